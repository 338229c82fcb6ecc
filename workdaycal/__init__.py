"""
workdaycal: UBC Workday schedule export (.xlsx) -> iCalendar (.ics).
"""
