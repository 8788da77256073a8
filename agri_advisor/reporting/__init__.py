"""
agri_advisor.reporting — terminal formatting for CLI output.

Modules:
  formatters — ASCII tables for recommendation sets and import rejections.
"""
