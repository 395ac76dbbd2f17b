"""Test package for Misparia.

Engine tests drive sessions with a fake clock and a synchronous problem
feed; the UI smoke tests run the pygame loop against SDL's dummy drivers so
no window is opened. Run ``pytest`` from the project root.
"""
