"""
Noticeboard - Broadcast Notice Board Service

A small service where registered users post time-scoped broadcasts
(announcements, alerts, maintenance windows) that anyone can read.
"""

__version__ = "0.1.0"
__author__ = "Noticeboard Project"
