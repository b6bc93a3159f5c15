"""Pixel-art books: storage, drawing, live events, an MCP bridge and a viewer."""

__version__ = "0.1.0"