"""HTTP API layer built on FastAPI.

Key components:
- **main**: Application factory and lifecycle management
- **middleware**: The request pipeline
  - Request body capture for logging
  - Request ID assignment and ingress/error logging
  - Latency and memory logging
  - Terminal error handling with consistent responses
- **schemas**: The canonical error response model
- **utils**: Error classification, request info extraction, the async
  capture wrapper and orjson responses
"""
