"""Report stream transport, console output and session control."""
