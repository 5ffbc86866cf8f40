"""
Direct messaging between teachers, students and parents of one school.

Components:
- handler: socket-side validation, storage and delivery of text messages
- repository: message persistence and read receipts
- router: REST endpoints for conversation fetch and the inbox list
- schemas: Pydantic models for the REST responses
"""
