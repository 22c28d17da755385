"""Inbound visitor request admission and processing"""
