"""
HTTP surface for gitbridge
"""
