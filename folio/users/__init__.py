"""Visitor identities and access levels"""
