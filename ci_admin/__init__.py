"""
CI Admin module.

Operator command line for reading build logs and build history.
"""
