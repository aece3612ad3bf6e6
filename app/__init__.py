"""Gemini Gateway application package"""
