"""
AI Tutor Module

Students ask questions over the relay socket and get answers from an
OpenRouter hosted model. When every model fails a canned, subject aware
answer is returned instead, so a question never goes unanswered.

Components:
- handler: tutoring session flow and learning history over the socket
- provider: ordered model fallback
- prompts: persona prompt and canned answers
- cleaning: strips markdown and list markers from answers
- router: REST endpoints for tutor history
- schemas: Pydantic models for adapter results and REST responses
"""
