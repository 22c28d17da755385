"""Outbound email delivery"""
