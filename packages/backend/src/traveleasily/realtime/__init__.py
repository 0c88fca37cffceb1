"""Real-time infrastructure: Socket.IO broadcast + Redis.

Services call realtime.socket.broadcast() after their database writes
commit; every connected client receives the event. Redis backs the
places cache and rate limiter, and optionally fans socket emits out
across worker processes.
"""
