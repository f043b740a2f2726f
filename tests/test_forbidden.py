from rryth.safety.forbidden import (
    ForbiddenRule,
    ForbiddenRuleSet,
    loose_hit,
    parse_forbidden,
    strict_hit,
)


class TestParseForbidden:

    def test_splits_on_commas_and_newlines(self):
        rules = parse_forbidden("nsfw!, Gore\nblood，violence")
        assert rules == (
            ForbiddenRule("nsfw", True),
            ForbiddenRule("gore", False),
            ForbiddenRule("blood", False),
            ForbiddenRule("violence", False),
        )

    def test_blank_entries_are_skipped(self):
        assert parse_forbidden(" , ,\n\n") == ()
        assert parse_forbidden(None) == ()
        assert parse_forbidden("!") == ()

    def test_punctuation_is_normalized(self):
        assert parse_forbidden("bad_word!") == (ForbiddenRule("bad word", True),)


class TestMatching:

    def test_strict_rule_matches_whole_words_only(self):
        rule = ForbiddenRule("nsfw", True)
        assert rule.matches("NSFW")
        assert rule.matches("very nsfw art")
        assert not rule.matches("nsfwish")

    def test_loose_rule_matches_substrings(self):
        rule = ForbiddenRule("gore", False)
        assert rule.matches("gorey scene")

    def test_hits_respect_strictness(self):
        rules = parse_forbidden("nsfw!, gore")
        assert strict_hit(rules, "nsfw") == ForbiddenRule("nsfw", True)
        assert strict_hit(rules, "gore") is None
        assert loose_hit(rules, "gore") == ForbiddenRule("gore", False)
        assert loose_hit(rules, "nsfw") is None

    def test_cjk_patterns(self):
        rule = parse_forbidden("血腥")[0]
        assert rule.matches("血腥场面")


class TestRuleSet:

    def test_reload_replaces_rules_wholesale(self):
        rule_set = ForbiddenRuleSet("a!, b")
        before = rule_set.rules
        rule_set.reload("c")
        assert before == (ForbiddenRule("a", True), ForbiddenRule("b", False))
        assert rule_set.rules == (ForbiddenRule("c", False),)
        assert len(rule_set) == 1
        assert list(rule_set) == [ForbiddenRule("c", False)]
