"""
Third-party API integrations (read-only).
"""
