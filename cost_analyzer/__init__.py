"""LLM-driven AWS cost analysis: plan, investigate with tools, report"""

__version__ = "1.0.0"
