"""System collaborators — package manager, service manager, and reboot commands.

Each is driven by a small YAML command table shipped in the edge-cd repository,
so a new distribution only needs a new table, not new code.
"""
