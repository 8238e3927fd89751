"""
cartscope

Reconstructs conversation and product records from the streamed responses
of the ChatGPT web application, as seen by a mitmproxy addon.
"""

from cartscope.approx import extract_approx
from cartscope.conversation import project_conversation
from cartscope.product import project_product
from cartscope.sse import tokenize

__all__ = [
    "extract_approx",
    "project_conversation",
    "project_product",
    "tokenize",
]
