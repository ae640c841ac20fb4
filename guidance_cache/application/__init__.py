"""
Application Module

Domain services and the FastAPI operational surface.
"""
