"""
Domain services: cache, email, notifications, storage, billing and jobs.
"""
