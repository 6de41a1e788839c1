"""
Shared utilities: settings, structured logging and the exception taxonomy.
"""
