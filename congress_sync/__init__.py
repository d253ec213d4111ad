"""Synchronizes U.S. Congress legislative data into a relational store."""

__version__ = '1.0.0'
