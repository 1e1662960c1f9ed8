"""CRM Console - test suite"""
