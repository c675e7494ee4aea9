"""Data input helpers for recorded runs.

:mod:`log_loader` reads CSV (numpy) and JSON-lines recordings of fused
samples so the replay driver can play them back without hardware.
"""
