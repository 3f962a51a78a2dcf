"""Cube data: loading card pools, per-game configuration, filtering and exports.

Everything here works on plain card dicts so it can be shared by the HTTP
routes, the draft services and the cube builder commands.
"""
