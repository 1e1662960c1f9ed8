"""Remote procedure client and session data store"""
