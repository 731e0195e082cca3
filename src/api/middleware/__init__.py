"""Middleware making up the request pipeline.

Outermost first:
1. BodyCaptureMiddleware (buffers and parses bodies for logging)
2. RequestLoggingMiddleware (assigns the request ID, logs ingress)
3. PerformanceLoggingMiddleware (logs latency and memory on completion)
4. ErrorHandlerMiddleware (turns every failure into the error response)
"""
