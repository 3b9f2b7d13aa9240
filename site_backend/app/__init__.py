"""FastAPI application: core plumbing, services, schemas and routers."""
