"""HTTP layer: Flask blueprints, authentication interceptor and error handlers."""
