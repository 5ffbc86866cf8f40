"""
MongoDB access for the realtime layer.

Collections:
- messages: direct chat messages and AI tutor exchanges
- users: platform identities (read only)
- classrooms: classroom rosters and grades (read only)
"""
