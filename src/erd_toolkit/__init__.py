"""Command line front end for ERD Toolkit."""
