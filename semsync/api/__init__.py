# HTTP API - FastAPI routers, auth and dependencies
