"""
Identity & membership lookup.

Users and classrooms are owned by the wider platform; this module only
reads them to resolve roles, schools, display names and grades.
"""
