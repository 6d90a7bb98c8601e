"""HTTP routers. Mounted by module path from main.create_app()."""
