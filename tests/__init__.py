"""Test package for the Soccer Cognitive Trainer.

Core tests drive each drill's session with a fake clock; the smoke tests run
the pygame shell headlessly using SDL's dummy drivers so no real window opens.
Run ``pytest`` from the project root.
"""
