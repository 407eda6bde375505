"""
GPU Forum Tracker API Package
"""
