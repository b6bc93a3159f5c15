"""Pixel book storage, drawing operations, change events and the HTTP server."""