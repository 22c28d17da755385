"""Blacklist, signed tokens, and access moderation"""
