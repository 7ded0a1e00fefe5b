import unittest

from citeforge.text_normalizer import (
    compact,
    normalize,
    normalize_whitespace,
    significant_words,
    tokenize_for_matching,
)


class TestNormalize(unittest.TestCase):
    SAMPLES = [
        "The Term shall be 12 months.",
        "  Clause   3.2 -- (a)  ",
        "snake_case_identifier",
        "Ünïcode Straße, café!",
        "\tTabs\nand\r\nnewlines\t",
        "...",
        "",
        "Of\ufb01ce on the \ufb01rst \ufb02oor",
        "\u0130stanbul \u01f0ump STRASSE \u00bd",
    ]

    def test_idempotent(self):
        for sample in self.SAMPLES:
            once = normalize(sample)
            self.assertEqual(normalize(once), once, sample)

    def test_punctuation_and_spacing_are_not_significant(self):
        self.assertEqual(normalize("Clause  3.2!"), normalize("clause 3 2"))
        self.assertEqual(normalize("Clause  3.2!"), "clause 3 2")

    def test_none_is_empty(self):
        self.assertEqual(normalize(None), "")
        self.assertEqual(compact(None), "")
        self.assertEqual(normalize_whitespace(None), "")

    def test_underscores_split_words(self):
        self.assertEqual(normalize("snake_case"), "snake case")

    def test_ligatures_and_case_are_folded(self):
        self.assertEqual(normalize("Of\ufb01ce on the \ufb01rst \ufb02oor"), "office on the first floor")
        self.assertEqual(normalize("Stra\u00dfe"), normalize("STRASSE"))
        self.assertEqual(normalize("\uff21\uff22\uff23"), "abc")

    def test_edges_are_trimmed(self):
        self.assertEqual(normalize("  --(quoted)--  "), "quoted")

    def test_normalize_whitespace_keeps_punctuation(self):
        self.assertEqual(normalize_whitespace("  Hello,\n  World!  "), "hello, world!")


class TestCompactAndWords(unittest.TestCase):
    def test_compact_drops_spaces(self):
        self.assertEqual(compact("Term sh all, be"), "termshallbe")

    def test_significant_words_keep_quote_order(self):
        words = significant_words("The term shall be twelve months; the term renews", min_len=4)
        self.assertEqual(words, ["term", "shall", "twelve", "months", "renews"])

    def test_tokenize_for_matching(self):
        self.assertEqual(tokenize_for_matching("Clause 3.2: the \ufb01nal term"), ["clause", "3", "2", "the", "final", "term"])
        self.assertEqual(tokenize_for_matching("Clause 3.2: the final term", min_len=4), ["clause", "final", "term"])
        self.assertEqual(tokenize_for_matching("one two three four", limit=2), ["one", "two"])
        self.assertEqual(tokenize_for_matching("\u0414\u043e\u0433\u043e\u0432\u043e\u0440 \u2116 5"), ["\u0434\u043e\u0433\u043e\u0432\u043e\u0440", "no", "5"])
        self.assertEqual(tokenize_for_matching(None), [])

    def test_significant_words_respects_min_length(self):
        self.assertEqual(significant_words("a bb ccc dddd", min_len=4), ["dddd"])
        self.assertEqual(significant_words("", min_len=1), [])


if __name__ == "__main__":
    unittest.main()
