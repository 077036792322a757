import random
import unittest

from accordion.Core import (
    CARDS,
    Card,
    Deck,
    Game,
    Match,
    MatchType,
    PlacedCard,
    PlayState,
    Rank,
    Suit,
    card_of,
    is_match,
)


def card(rank, suit):
    return Card.from_rank_and_suit(rank, suit)


def flags(game):
    return [(p.matches_one, p.matches_three) for p in game.tableau]


class CardTestCase(unittest.TestCase):
    def test_rank_and_suit_round_trip(self):
        for i in range(52):
            c = card_of(i)
            self.assertEqual(i, Card.from_rank_and_suit(c.rank, c.suit).id)

    def test_identities_are_distinct(self):
        pairs = {(c.rank, c.suit) for c in CARDS}
        self.assertEqual(52, len(pairs))

    def test_decoding(self):
        self.assertEqual(Rank.ACE, card_of(0).rank)
        self.assertEqual(Suit.CLUBS, card_of(0).suit)
        self.assertEqual(Rank.KING, card_of(51).rank)
        self.assertEqual(Suit.SPADES, card_of(51).suit)
        self.assertEqual(Suit.DIAMONDS, card_of(13).suit)

    def test_out_of_range_is_rejected(self):
        for bad in (-1, 52, 100):
            with self.assertRaises(ValueError):
                Card(bad)
            with self.assertRaises(ValueError):
                card_of(bad)
        with self.assertRaises(ValueError):
            Card.from_rank_and_suit(13, 0)

    def test_display(self):
        self.assertEqual("A♣", str(card(Rank.ACE, Suit.CLUBS)))
        self.assertEqual("10♥", str(card(Rank.TEN, Suit.HEARTS)))
        self.assertEqual("K♠", str(card(Rank.KING, Suit.SPADES)))


class DeckTestCase(unittest.TestCase):
    def test_draws_every_card_once_then_exhausts(self):
        deck = Deck.new_shuffled(random.Random(7))
        drawn = [deck.draw() for _ in range(52)]
        self.assertEqual(set(range(52)), {c.id for c in drawn})
        self.assertIsNone(deck.draw())
        self.assertEqual(52, deck.pos)
        self.assertEqual(0, len(deck))

    def test_seed_reproduces_order(self):
        a = Deck.from_seed(12345)
        b = Deck.from_seed(12345)
        self.assertEqual([c.id for c in a.cards], [c.id for c in b.cards])

    def test_unshuffled_order(self):
        deck = Deck.new_unshuffled()
        self.assertEqual(list(range(52)), [c.id for c in deck.cards])
        self.assertEqual("A♣", str(deck.draw()))
        self.assertTrue(str(deck).startswith("2♣ 3♣"))

    def test_rejects_malformed_decks(self):
        with self.assertRaises(ValueError):
            Deck(CARDS[:51])
        with self.assertRaises(ValueError):
            Deck.from_ids([0] * 52)
        with self.assertRaises(ValueError):
            Deck(CARDS, pos=53)


class MatchEngineTestCase(unittest.TestCase):
    def test_is_match_prefers_suit(self):
        self.assertEqual(MatchType.SUIT, is_match(card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.CLUBS)))
        self.assertEqual(MatchType.SUIT, is_match(card(Rank.ACE, Suit.CLUBS), card(Rank.ACE, Suit.CLUBS)))
        self.assertEqual(MatchType.RANK, is_match(card(Rank.ACE, Suit.CLUBS), card(Rank.ACE, Suit.HEARTS)))
        self.assertIsNone(is_match(card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.HEARTS)))

    def test_ace_two_of_clubs(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.CLUBS)])
        self.assertEqual([(False, False), (True, False)], flags(game))

    def test_distance_three_flag(self):
        game = Game.from_layout(
            [
                card(Rank.ACE, Suit.CLUBS),
                card(Rank.TWO, Suit.DIAMONDS),
                card(Rank.THREE, Suit.CLUBS),
                card(Rank.FIVE, Suit.CLUBS),
            ]
        )
        self.assertEqual((True, True), flags(game)[3])
        self.assertEqual([Match(3, 1), Match(3, 3)], game.find_matches())
        self.assertEqual("5♣B", str(game.tableau[3]))

    def test_check_out_of_range_is_noop(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS)])
        game.check_matches_at(5)
        game.check_matches_at(-1)
        self.assertEqual([(False, False)], flags(game))

    def test_removal_only_rechecks_three_positions(self):
        # Past ix+2 both left neighbours shift along with the card, so those slots keep identical flags.
        layout = [card(Rank.ACE, Suit.HEARTS)] + [card(r, Suit.CLUBS) for r in range(1, 8)]
        game = Game.from_layout(layout)
        before = list(game.tableau)
        removed = game.remove_card(0)
        self.assertEqual(card(Rank.ACE, Suit.HEARTS), removed)
        self.assertEqual([(False, False), (True, False), (True, False)], flags(game)[:3])
        self.assertEqual(before[4:], game.tableau[3:])

    def test_place_card_rechecks_slot_and_next_two(self):
        layout = [card(Rank.ACE, Suit.CLUBS), card(Rank.FIVE, Suit.DIAMONDS), card(Rank.SIX, Suit.HEARTS), card(Rank.SEVEN, Suit.CLUBS)]
        game = Game.from_layout(layout)
        self.assertEqual((False, True), flags(game)[3])

        game.place_card(card(Rank.FIVE, Suit.HEARTS), 0)

        self.assertEqual([(False, False), (True, False), (False, False)], flags(game)[:3])
        # Slot 3 lies outside the recomputed window and keeps its previous flags.
        self.assertEqual((False, True), flags(game)[3])

    def test_outcome_kinds_are_enums(self):
        self.assertEqual("suit", MatchType.SUIT.value)
        self.assertEqual({"won", "lost", "choose"}, {state.value for state in PlayState})

    def test_bad_indices_raise(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.CLUBS)])
        with self.assertRaises(IndexError):
            game.remove_card(2)
        with self.assertRaises(IndexError):
            game.remove_card(-1)
        with self.assertRaises(IndexError):
            game.place_card(card(Rank.KING, Suit.CLUBS), 2)
        with self.assertRaises(IndexError):
            game.make_match(Match(2, 3))

    def test_match_distance_is_validated(self):
        for distance in (0, 2, 4, -1):
            with self.assertRaises(ValueError):
                Match(5, distance)
        self.assertEqual(2, Match(5, 3).target)


class GameTestCase(unittest.TestCase):
    def test_make_match_shrinks_by_one(self):
        layout = [
            card(Rank.ACE, Suit.CLUBS),
            card(Rank.TWO, Suit.DIAMONDS),
            card(Rank.THREE, Suit.HEARTS),
            card(Rank.FIVE, Suit.CLUBS),
            card(Rank.NINE, Suit.SPADES),
        ]
        game = Game.from_layout(layout)
        game.make_match(Match(3, 3))
        self.assertEqual(4, len(game.tableau))
        self.assertEqual(
            [card(Rank.FIVE, Suit.CLUBS), card(Rank.TWO, Suit.DIAMONDS), card(Rank.THREE, Suit.HEARTS), card(Rank.NINE, Suit.SPADES)],
            game.cards(),
        )

    def test_deal_card_appends_and_flags(self):
        game = Game(Deck.new_unshuffled())
        self.assertTrue(game.deal_card())
        self.assertTrue(game.deal_card())
        self.assertEqual([(False, False), (True, False)], flags(game))
        self.assertEqual(2, game.deck.pos)

    def test_deal_card_on_exhausted_deck(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS)])
        self.assertFalse(game.deal_card())
        self.assertEqual(1, len(game.tableau))

    def test_unshuffled_deck_plays_to_a_win_without_choices(self):
        game = Game(Deck.new_unshuffled())
        self.assertEqual(PlayState.WON, game.play_to_choice().kind)
        self.assertEqual(0, game.choice_points)
        self.assertEqual([card(Rank.KING, Suit.SPADES)], game.cards())

    def test_play_to_choice_reports_lost(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.HEARTS)])
        self.assertEqual(PlayState.LOST, game.play_to_choice().kind)

    def test_play_to_choice_stops_at_choice(self):
        game = Game(Deck.from_ids([0, 14, 2, 4] + [i for i in range(52) if i not in (0, 14, 2, 4)]))
        choices = game.play_to_choice()
        self.assertEqual(PlayState.CHOOSE, choices.kind)
        self.assertEqual((Match(3, 1), Match(3, 3)), choices.matches)
        self.assertEqual(1, game.choice_points)
        self.assertEqual(4, len(game.tableau))

    def test_save_and_restore(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.CLUBS), card(Rank.TWO, Suit.DIAMONDS)])
        saved = game.save_game()
        game.make_choice(Match(2, 1))
        self.assertEqual(2, len(game.tableau))
        game.restore(saved)
        self.assertEqual(3, len(game.tableau))
        self.assertEqual([Match(1, 1), Match(2, 1)], game.find_matches())
        self.assertEqual(52, game.deck.pos)

    def test_str_shows_deck_and_flagged_tableau(self):
        game = Game.from_layout([card(Rank.ACE, Suit.CLUBS), card(Rank.TWO, Suit.CLUBS)])
        self.assertEqual("Deck: \nTableau: A♣_ 2♣S", str(game))
        self.assertEqual("A♣_", str(PlacedCard(card(Rank.ACE, Suit.CLUBS))))


if __name__ == "__main__":
    unittest.main()
