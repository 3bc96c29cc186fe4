"""
Support Desk - AI-assisted IT support ticket intake and dashboard backend
"""
__version__ = "1.0.0"
