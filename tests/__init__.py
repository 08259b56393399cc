"""
Test suite for the Authorization Model Engine.
"""
