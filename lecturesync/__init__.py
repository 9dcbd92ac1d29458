"""
LectureSync – keeps the recorded lecture schedule in lectures.json in step
with the weekly timetable export.
"""
