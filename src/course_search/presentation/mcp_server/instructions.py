"""
MCP Server Instructions - usage guide for AI agents.

Kept apart from server.py so it can be maintained and queried on its own.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
Course Search MCP Server - federated online course finder

Searches edX, GeeksforGeeks, SWAYAM and a curated catalog in one call.
Results are normalized, filtered, ranked for relevance and cached for an hour.

## Quick search
Trigger: "find a course on...", "any free courses about..."
```
search_courses(query="machine learning", limit=5)
```

## Filtered search
All filters are optional and combined with AND:
- max_price: listings priced "Free" always pass; 0 means free only
- platforms: ["edX", "GeeksforGeeks", "SWAYAM", "Coursera", "Udemy"]
- level: "Beginner" | "Intermediate" | "Advanced"
- max_duration_hours: listings with unknown duration always pass
- language: substring match, e.g. "English"
```
search_courses(query="python", max_price=0, level="Beginner")
```

## Follow-ups on a result
Every result shows an `id` and the search shows a `search_id`.
- get_course_insights(listing_id=...) for pros, cons and audience
- track_course_click(listing_id=..., search_id=...) when the user opens a course

## Recommendations
```
recommend_courses(interests=["data science"], skills=["python"], level="Beginner")
```

## Analytics
- get_popular_searches(limit=10)
- get_search_analytics(days=7): trends, platform yield, popular queries
- list_platforms(): which sources are active

Notes:
- Some sources can be temporarily unavailable; the footer of a search names them.
- Searches, recommendations and insights share a limit of 20 per minute; analytics allows 50 per hour.
  On "Retry after N seconds" wait before retrying.
"""
