"""
Infrastructure Layer - External Systems Integration

Contains:
- providers: scraped platforms (edX, GeeksforGeeks, SWAYAM) and the static catalog
- llm: OpenAI query enhancer, relevance ranker and course advisor
- cache: TTL result cache
- analytics: SearchRecord store
- ratelimit: burst + sustained request windows
- persistence: listing catalog and view counters
"""
