"""
Test suite for swapbench.
"""
