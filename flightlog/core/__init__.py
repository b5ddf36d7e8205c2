"""Core components for log decoding: byte I/O, framing and the type system."""
