"""Draft domain services: pack drafting, auction grids, timers and presence.

HTTP routes, socket handlers and the background scheduler all call into
these modules, keeping transport concerns separated from draft mechanics.
"""
