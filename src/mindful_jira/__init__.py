"""mindful-jira: a terminal dashboard of your assigned Jira issues.

Issues are fetched from Jira and merged with private local annotations
(a note and a highlight flag per issue). See `mindful-jira --help`.
"""

__version__ = "0.1.0"
