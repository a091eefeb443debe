"""Chats domain - one-to-one conversations, message history and clear/delete"""
