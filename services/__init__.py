"""
Session-level services: config resolution, generator factory and ModelManager.
"""
