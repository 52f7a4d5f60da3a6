"""
Core helpers shared by the manifest and sync modules.
"""
