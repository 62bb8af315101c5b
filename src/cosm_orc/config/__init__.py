"""
Config - chain parameters, persisted deploy state and signing keys.
"""
