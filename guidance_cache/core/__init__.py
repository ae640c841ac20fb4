"""
Core Module

Configuration, logging, exceptions and collaborator protocols shared by
every layer.
"""
