"""HireHub backend: interview sessions over HTTP and real-time rooms over WebSocket."""
