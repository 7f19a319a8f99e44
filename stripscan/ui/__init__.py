"""
UI Package for the StripScan Dashboard.

This package contains the Streamlit dashboard and visualization utilities.
"""
