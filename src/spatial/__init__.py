"""
Package marker for taxi zone spatial lookups in `src.spatial`.
The geometry index is built once per run and shared read-only by zone assignment workers.
"""
