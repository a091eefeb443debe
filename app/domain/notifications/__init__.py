"""Notifications domain - persisted in-app notifications and their read state"""
