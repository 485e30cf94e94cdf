"""
MeetSpark: event networking with surveys, AI matching and meeting booking
"""
