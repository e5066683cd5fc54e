"""Test package for the dual N-back trainer.

The trial engine is driven entirely by an injected clock, so every test here
runs headlessly and deterministically. The audio smoke test uses pygame's
dummy drivers. To run these tests, execute ``pytest`` from the project root.
"""
