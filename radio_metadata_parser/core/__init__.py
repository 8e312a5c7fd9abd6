"""Core radio parser components"""
