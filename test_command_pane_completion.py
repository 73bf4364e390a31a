from command_pane import CommandPane


def _pane(buffer):
    pane = CommandPane()
    pane.set_command_names(["clear", "clear-formats", "export", "filter", "search", "sort"])
    pane.set_argument_choices(
        {
            "sort": ["date-asc", "date-desc", "text-asc", "text-desc"],
            "filter": ["none", "today", "this-week", "prev-week"],
            "export": ["csv", "png", "pdf", "json"],
        }
    )
    pane.activate()
    pane.set_buffer(buffer)
    return pane


def _apply_completion(pane: CommandPane):
    suggestion = pane._get_suggestion()
    assert suggestion is not None, "expected a completion suggestion"
    pane._apply_suggestion(suggestion)


def test_command_name_completion_prefers_shortest():
    pane = _pane("cl")
    _apply_completion(pane)
    assert pane.get_buffer() == "clear"
    assert pane.cursor == len("clear")


def test_exact_command_name_offers_longer_variant():
    pane = _pane("clear")
    suggestion = pane._get_suggestion()
    assert suggestion["replacement"] == "clear-formats"
    assert suggestion["display"] == "-formats"


def test_first_argument_completion():
    pane = _pane("export p")
    suggestion = pane._get_suggestion()
    assert suggestion["replacement"] == "pdf"
    assert suggestion["command"] == "export"

    pane = _pane("filter this")
    _apply_completion(pane)
    assert pane.get_buffer() == "filter this-week"


def test_sort_mode_completes_after_column():
    pane = _pane("sort Date date-d")
    _apply_completion(pane)
    assert pane.get_buffer() == "sort Date date-desc"

    # the column slot itself has no choices
    assert _pane("sort da")._get_suggestion() is None


def test_no_suggestion_mid_word_or_for_unknown_command():
    pane = _pane("export pd x")
    pane.cursor = len("export p")
    assert pane._get_suggestion() is None
    assert _pane("search CS")._get_suggestion() is None


def test_tab_key_applies_completion():
    pane = _pane("sea")
    assert pane.handle_key(9) is None
    assert pane.get_buffer() == "search"


def test_push_history_skips_duplicates():
    pane = _pane("")
    pane.push_history("export csv")
    pane.push_history("export csv ")
    pane.push_history("")
    assert pane.history == ["export csv"]
    pane.handle_key(16)  # Ctrl+P
    assert pane.get_buffer() == "export csv"
