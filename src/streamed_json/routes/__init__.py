"""HTTP routers exposed by the application."""
