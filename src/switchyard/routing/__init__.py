"""Routing — patterns, layers, and the layered router.

Layers are registered in order and dispatched in that same order;
nothing is ever reordered.
"""
