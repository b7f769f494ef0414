"""
IELTS Exam Date Monitor

Watches the Bilkent University IELTS page for exam-date announcements
and notifies subscribed Telegram chats when the dates change.
"""

__version__ = "1.0.0"
