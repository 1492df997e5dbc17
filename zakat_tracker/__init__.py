"""
Zakat Tracker - Source Package

Persistence and data management for a personal zakat tracker:
one user data record, rotating backups, export/import and a
first-run default template.

DESIGN PRINCIPLES:
1. Data lives on the user's machine only
2. Fail visibly on imports, never on loads
3. No silent corrections
4. Every data operation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Zakat Tracker Team"
