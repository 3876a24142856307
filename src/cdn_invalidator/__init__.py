"""
Yandex Cloud CDN cache invalidation for CI pipelines
"""

__version__ = "1.0.0"
