"""
Shared kernel: command results, error taxonomy, write barrier,
money helpers and the pluggable collaborator backends.
"""
