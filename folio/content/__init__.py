"""Content document storage and access filtering"""
