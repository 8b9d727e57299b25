"""Trace Beautify — arc smoothing, width transitions and DRC back-off for PCB traces.

Subpackages:
  geometry   Pure 2-D vector math.
  config     User-facing settings (JSON persisted).
  pipeline   Path extraction, corner smoothing, width transitions, DRC loop.
  host       Host adapters: primitive storage, violation oracles, side tables.
  web        FastAPI surface.
"""

__version__ = "0.3.0"
