"""
Publishing module for agency growth reports.
"""

from .markdown_publisher import MarkdownPublisher

__all__ = ["MarkdownPublisher"]
