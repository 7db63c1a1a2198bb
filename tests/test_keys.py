from wlpop.keys import (
    KeyChord,
    Modifier,
    default_keybinds,
    find_conflicts,
    key_to_char,
    match_action,
    parse_action,
    parse_chord,
    parse_chords,
)
from wlpop.models import Action


def test_parse_named_keys():
    assert parse_chords("Return enter ESC pgdn Page_Up space") == [
        KeyChord("Return"),
        KeyChord("Return"),
        KeyChord("Escape"),
        KeyChord("Page_Down"),
        KeyChord("Page_Up"),
        KeyChord("space"),
    ]


def test_parse_modifiers():
    assert parse_chord("ctrl+u") == KeyChord("u", Modifier.CONTROL)
    assert parse_chord("Control+Shift+Tab") == KeyChord("Tab", Modifier.CONTROL | Modifier.SHIFT)
    assert parse_chord("mod1+x") == KeyChord("x", Modifier.ALT)
    assert parse_chord("mod4+Return") == KeyChord("Return", Modifier.SUPER)


def test_single_character_kept_as_written():
    assert parse_chord("G") == KeyChord("G")
    assert parse_chord("g") == KeyChord("g")
    assert parse_chord("/") == KeyChord("/")


def test_unknown_modifier_is_ignored(test_logger):
    assert parse_chord("hyper+u", test_logger) == KeyChord("u")


def test_malformed_tokens_only_drop_themselves(test_logger):
    chords = parse_chords("ctrl+n nonsense Down ctrl+ Tab", test_logger)
    assert chords == [KeyChord("n", Modifier.CONTROL), KeyChord("Down"), KeyChord("Tab")]


def test_parse_never_fails_on_odd_input(test_logger):
    for spec in ("", "   ", "+", "++", "ctrl+", "+a", "a+b+c+d", "\t\n", "é", "ctrl+shift+alt+super+F13"):
        assert isinstance(parse_chords(spec, test_logger), list)


def test_chord_str():
    assert str(KeyChord("Tab", Modifier.SHIFT)) == "shift+Tab"
    assert str(KeyChord("u", Modifier.CONTROL)) == "ctrl+u"
    assert parse_chord(str(KeyChord("x", Modifier.CONTROL | Modifier.ALT))) == KeyChord("x", Modifier.CONTROL | Modifier.ALT)


def test_parse_action():
    assert parse_action("clear_search") == Action.CLEAR_SEARCH
    assert parse_action(" Page_Down ") == Action.PAGE_DOWN
    assert parse_action("explode") is None


def test_defaults():
    table = default_keybinds()
    assert table[Action.SELECT] == [KeyChord("Return"), KeyChord("KP_Enter")]
    assert table[Action.PREV] == [KeyChord("Up"), KeyChord("Tab", Modifier.SHIFT)]
    assert Action.DELETE not in default_keybinds(allow_delete=False)
    assert find_conflicts(table) == []


def test_match_exact_modifiers():
    table = default_keybinds()
    assert match_action(table, "Tab", 0) == Action.NEXT
    assert match_action(table, "Tab", Modifier.SHIFT) == Action.PREV
    assert match_action(table, "u", Modifier.CONTROL) == Action.CLEAR_SEARCH
    # modifiers must be equal, not a subset
    assert match_action(table, "u", Modifier.CONTROL | Modifier.SHIFT) is None
    assert match_action(table, "Return", Modifier.CONTROL) is None
    assert match_action(table, "x", 0) is None


def test_match_ignores_lock_modifiers():
    table = default_keybinds()
    assert match_action(table, "Return", Modifier.LOCK | Modifier.NUM_LOCK) == Action.SELECT
    assert match_action(table, "u", Modifier.CONTROL | Modifier.NUM_LOCK) == Action.CLEAR_SEARCH


def test_match_only_returns_the_bound_action():
    table = default_keybinds()
    for action, chords in table.items():
        for chord in chords:
            assert match_action(table, chord.key, chord.modifiers) == action


def test_conflicts_reported_in_declaration_order():
    chord = KeyChord("j", Modifier.CONTROL)
    table = {Action.PREV: [chord], Action.NEXT: [chord]}
    assert find_conflicts(table) == [(chord, Action.NEXT, Action.PREV)]
    assert match_action(table, "j", Modifier.CONTROL) == Action.NEXT


def test_key_to_char():
    assert key_to_char("a") == "a"
    assert key_to_char("G") == "G"
    assert key_to_char("slash") == "/"
    assert key_to_char("Return") is None
    assert key_to_char(" ") is None
    assert key_to_char("é") is None
