from exam_time import ExamTimeColumn, exam_start_time, find_session_column, find_time_column


def test_exam_start_time_codes():
    assert exam_start_time("M") == "9:30 AM"
    assert exam_start_time(" e ") == "1:30 PM"
    assert exam_start_time("N") == ""
    assert exam_start_time(None) == ""


def test_time_column_matches_whole_word():
    assert find_time_column(["Date", "Timetable", "Exam Time"]) == 2
    assert find_time_column(["Date", "Sub Code"]) is None


def test_session_column_skips_time_column():
    headers = ["Date", "Time (shift)", "Session"]
    assert find_session_column(headers, exclude=1) == 2
    assert find_session_column(["Date", "Sem"]) == 1


def test_value_derives_time_from_session_code():
    exam = ExamTimeColumn(["Date", "Session", "Time"])
    assert exam.active
    assert exam.value(["2024-01-01", "M", ""], 2) == "9:30 AM"
    assert exam.value(["2024-01-01", "e", "stale"], 2) == "1:30 PM"
    assert exam.value(["2024-01-01", "M", ""], 0) == "2024-01-01"


def test_unknown_code_keeps_stored_time():
    exam = ExamTimeColumn(["Date", "Shift", "Time"])
    assert exam.value(["2024-01-01", "X", "11:00 AM"], 2) == "11:00 AM"


def test_inactive_without_session_column():
    exam = ExamTimeColumn(["Date", "Time"])
    assert not exam.active
    assert exam.value(["2024-01-01", "10:00"], 1) == "10:00"
