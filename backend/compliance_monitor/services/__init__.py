"""Compliance Monitor - Services"""
