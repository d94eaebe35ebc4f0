"""
Flowcast - HTTP API
"""
