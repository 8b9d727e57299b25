"""Pipeline stages — tracks, smoother, transition, drc.

  tracks      — group raw segments by net/layer, recover continuous paths
  smoother    — turn path corners into tangent arcs (PathOps)
  transition  — taper junctions between differently-wide segments
  drc         — emit → check → shrink-or-reject feedback loop
  beautify    — wires the stages to a host and reports a summary
"""
