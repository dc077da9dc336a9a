"""
Application wiring: dependency container and composition root
"""
