"""
Project Tracker - A schema-driven project and entry tracker.

This package lets users create projects identified by a 7-digit number,
keep a list of structured entries inside each project, and filter, sort
and export those entries to CSV or JSON.
"""

__version__ = "0.1.0"
__author__ = "Project Tracker Team"
