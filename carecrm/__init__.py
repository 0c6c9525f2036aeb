"""Care CRM back office - shift scheduling and lifecycle management"""

__version__ = "1.0.0"
