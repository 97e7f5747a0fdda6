"""
eTuition Backend: the tutoring marketplace API.

Run it with `uvicorn etuition_backend.main:app`.
"""
