"""
Services for mediapull.
"""
