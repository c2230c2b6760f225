"""Test package for the Sound Memory game.

Core modules are exercised with a fake clock so every timing path is
deterministic. The pygame smoke tests use SDL's dummy drivers to avoid
opening real windows or audio devices. Run ``pytest`` from the project root.
"""
