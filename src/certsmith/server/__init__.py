"""WSGI serving: programmatic gunicorn runner and external entry point."""
