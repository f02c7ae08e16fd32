"""
apm commands - one module per pacman-style operation.
"""
