"""
Command handlers for the imageupdate CLI.
"""
