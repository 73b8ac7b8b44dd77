"""
MentorMind API package.

Provides the FastAPI application for the MentorMind coaching service. The
application lives in `api.app`; it is not imported here so that module
routers can depend on `api.dependencies` without pulling in the app.
"""
