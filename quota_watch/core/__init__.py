"""
Core modules for Quota Watch.

This package contains the billing-cycle arithmetic, billing feed aggregation,
quota projection and report assembly.
"""
