"""Test package for flowcluster.

This package contains:
- Unit tests (test_spatial.py, test_clustering.py, test_tree.py, test_flows.py)
- Configuration and cache tests (test_tools.py)
- Property tests over a seeded random dataset (test_properties.py)
- Shared fixtures (conftest.py)
"""
