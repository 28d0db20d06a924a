"""
Library modules that implement the resource container format, its decompression scheme, and the
resource table that merges archives. None of these modules depend on `lgres.units`.
"""
