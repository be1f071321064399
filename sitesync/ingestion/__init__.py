"""
SiteSync Ingestion Module
=========================

Transport for the two content sources and the extraction rules applied
to their raw markup.
"""
