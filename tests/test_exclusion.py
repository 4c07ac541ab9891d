"""Test suite for exclusion rules and the tag-stack matcher."""

from polygot.parser.exclusion import (
    ExcludeRule,
    ExclusionMatcher,
    TagContext,
    is_excluded,
    matches_rule,
    parse_exclude_rules,
    parse_tag_context,
)


class TestParseExcludeRules:
    """Test cases for selector parsing."""

    def test_tag_only(self):
        """A bare tag name becomes a lowercased tag rule."""
        assert parse_exclude_rules(['SCRIPT']) == [ExcludeRule(tag='script')]

    def test_tag_with_id_and_classes(self):
        """Tag, id and every class are captured."""
        rule = parse_exclude_rules(['div#header.dark.wide'])[0]
        assert rule.tag == 'div'
        assert rule.id == 'header'
        assert rule.classes == ['dark', 'wide']

    def test_class_and_id_without_tag(self):
        """Selectors may omit the tag."""
        class_rule, id_rule = parse_exclude_rules(['.no-translate', '#footer'])
        assert class_rule.tag is None
        assert class_rule.classes == ['no-translate']
        assert id_rule.tag is None
        assert id_rule.id == 'footer'

    def test_blank_selectors_ignored(self):
        """Empty and whitespace selectors produce no rules."""
        assert parse_exclude_rules(['', '   ', None]) == []
        assert parse_exclude_rules(None) == []


class TestTagContext:
    """Test cases for reading id/class from tag attributes."""

    def test_html_class_and_id(self):
        context = parse_tag_context('div', ' id="main" class="a  b"', 0)
        assert context.id == 'main'
        assert context.classes == ['a', 'b']

    def test_jsx_classname(self):
        context = parse_tag_context('div', ' className="card primary"', 0)
        assert context.classes == ['card', 'primary']

    def test_jsx_classname_expression(self):
        """Best effort: the first quoted literal inside className={...}."""
        context = parse_tag_context('div', ' className={cx("no-translate muted", active)}', 0)
        assert 'no-translate' in context.classes
        assert 'muted' in context.classes


class TestMatchesRule:
    """Test cases for rule matching against one ancestor."""

    def test_tag_only_rule_matches_on_tag(self):
        context = TagContext(tag='script', id='x', classes=['y'])
        assert matches_rule(context, [ExcludeRule(tag='script')])

    def test_all_rule_classes_required(self):
        context = TagContext(tag='button', classes=['primary'])
        assert not matches_rule(context, [ExcludeRule(tag='button', classes=['primary', 'large'])])
        context.classes.append('large')
        assert matches_rule(context, [ExcludeRule(tag='button', classes=['primary', 'large'])])

    def test_id_must_match(self):
        context = TagContext(tag='div', id='content')
        assert not matches_rule(context, [ExcludeRule(tag='div', id='header')])
        assert matches_rule(context, [ExcludeRule(id='content')])

    def test_tag_mismatch(self):
        context = TagContext(tag='span', classes=['no-translate'])
        assert not matches_rule(context, [ExcludeRule(tag='div', classes=['no-translate'])])


class TestExclusionMatcher:
    """Test cases for position queries over a whole document."""

    def test_inside_and_after_excluded_subtree(self):
        """Positions inside the excluded div are excluded, positions after it are not."""
        code = '<div class="no-translate"><span>Hidden</span></div><span>Visible</span>'
        rules = parse_exclude_rules(['div.no-translate'])

        assert is_excluded(code, code.index('Hidden'), rules)
        assert not is_excluded(code, code.index('Visible'), rules)

    def test_no_rules_never_excludes(self):
        code = '<script>var a = 1;</script>'
        assert not ExclusionMatcher(code, []).is_excluded(code.index('var'))

    def test_self_closing_tags_do_not_push(self):
        code = '<div><img src="a.png" /><p>Text</p></div>'
        matcher = ExclusionMatcher(code, parse_exclude_rules(['img']))
        assert not matcher.is_excluded(code.index('Text'))

    def test_closing_tag_pops_nearest_same_name(self):
        """Malformed nesting: </div> removes the div even when a span is still open."""
        code = '<div class="skip"><span>One</div><p>Two</p>'
        matcher = ExclusionMatcher(code, parse_exclude_rules(['div.skip']))

        assert matcher.is_excluded(code.index('One'))
        assert not matcher.is_excluded(code.index('Two'))
        assert [t.tag for t in matcher.open_tags_at(code.index('Two'))] == ['span', 'p']

    def test_unmatched_closing_tag_ignored(self):
        code = '</section><section id="legal"><p>Terms</p></section>'
        matcher = ExclusionMatcher(code, parse_exclude_rules(['section#legal']))
        assert matcher.is_excluded(code.index('Terms'))
