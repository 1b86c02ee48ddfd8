"""
Web Module
"""
