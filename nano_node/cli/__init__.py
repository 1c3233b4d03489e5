"""
NanoNode - CLI Package
"""
