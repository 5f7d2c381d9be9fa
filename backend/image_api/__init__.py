"""
Image Gateway API: uploads images to Cloudflare Images and indexes them.
"""
__version__ = "1.0.0"
