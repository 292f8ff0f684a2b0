"""
Backend package for the job fair landing page.

This package provides a FastAPI application that accepts job applications
with a CV attachment, stores the CV in Google Drive or Firebase Storage and
records the application in Google Sheets or Firestore.
"""
