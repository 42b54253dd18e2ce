"""Flex absence tracker: consolidates attendance, course and contact reports and flags
students who skipped their flex period."""

__version__ = "0.1.0"
