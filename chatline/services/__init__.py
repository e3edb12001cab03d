"""Application services used by the HTTP routers."""
