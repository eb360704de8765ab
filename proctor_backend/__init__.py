"""
Exam proctoring backend: session lifecycle, monitoring events and recordings
"""
