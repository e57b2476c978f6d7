"""
dkutimetable: parser for the DKU HTML timetable pages.
"""
