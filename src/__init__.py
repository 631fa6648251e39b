"""Hooked on Flies back-office service."""
