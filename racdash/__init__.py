"""
RAC Dashboard Backend Package

FastAPI-based backend for the RAC financial dashboard. Keeps a short-lived,
per-session cache of company financial summaries loaded from Xero and
serves instant consolidated views over any selection of those companies.
"""
