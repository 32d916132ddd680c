"""Real-time project channels over WebSocket."""
