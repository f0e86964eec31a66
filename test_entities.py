from ducktape.nlp.entities import (
    EMAIL_RE,
    EntityExtractor,
    extract_emails,
    extract_location,
    merge_emails,
)

extractor = EntityExtractor()


def test_and_invite_keeps_full_names():
    names, emails = extractor.extract(
        "create an event called TestEvent tonight at 10pm and invite Shaun Stuart and Joe Buck"
    )
    assert names == ["Shaun Stuart", "Joe Buck"]
    assert emails == []


def test_with_list_stops_at_stop_phrase():
    names, emails = extractor.extract("meeting with John, Mary and bob@example.com about the budget")
    assert names == ["John", "Mary"]
    assert emails == ["bob@example.com"]


def test_with_cut_by_time_words():
    names, _ = extractor.extract("schedule a meeting with John tomorrow at 2pm")
    assert names == ["John"]

    names, _ = extractor.extract("Schedule lunch with Sarah at 12:30pm today at Cafe Luna")
    assert names == ["Sarah"]


def test_emails_routed_away_from_names():
    names, emails = extractor.extract("schedule a sync and invite joe@x.com and Mary")
    assert names == ["Mary"]
    assert emails == ["joe@x.com"]


def test_email_outside_connective():
    names, emails = extractor.extract("standup tomorrow at 9am, send it to alice@corp.io.")
    assert emails == ["alice@corp.io"]
    assert names == []


def test_to_only_takes_capitalised_names():
    names, _ = extractor.extract("meeting with John to discuss the roadmap")
    assert names == ["John"]

    names, _ = extractor.extract("send the invite to Priya")
    assert names == ["Priya"]


def test_names_and_emails_are_disjoint():
    commands = [
        "meeting with a@b.com, Ann and invite c@d.org and Bob",
        "call with Zed and zed@example.com",
        "invite Joe joe@x.com",
        "sync with Amy and invite AMY@x.com and amy@x.com",
    ]
    for command in commands:
        names, emails = extractor.extract(command)
        assert not set(names) & set(emails), command
        assert all(not EMAIL_RE.search(name) for name in names), command


def test_email_dedup_is_case_insensitive():
    _, emails = extractor.extract("sync and invite AMY@x.com and amy@x.com")
    assert emails == ["AMY@x.com"]
    assert merge_emails(["a@b.com"], ["A@B.com", "c@d.com"]) == ["a@b.com", "c@d.com"]


def test_pronouns_and_numbers_skipped():
    names, _ = extractor.extract("lunch with me")
    assert names == []
    names, _ = extractor.extract("meeting with 3 engineers")
    assert names == []


def test_no_connective():
    assert extractor.extract("standup tomorrow at 9am") == ([], [])
    assert extractor.extract("") == ([], [])


def test_extract_emails_strips_trailing_dot():
    assert extract_emails("write to a.b@c.co.uk.") == ["a.b@c.co.uk"]


def test_location():
    assert extract_location("Schedule lunch with Sarah at 12:30pm today at Cafe Luna") == "Cafe Luna"
    assert extract_location("standup in Room 4 tomorrow at 9am") == "Room 4"
    assert extract_location("coffee @ Blue Bottle with Sam") == "Blue Bottle"


def test_location_ignores_times_and_dates():
    assert extract_location("meeting at 3pm") is None
    assert extract_location("review in 30 minutes") is None
    assert extract_location("launch at Noon") is None
    assert extract_location("offsite in March") is None
    assert extract_location("lunch at the park") is None


def test_stop_word_does_not_open_new_segment():
    names, _ = extractor.extract("schedule a sync and invite Bob to Project Kickoff")
    assert names == ["Bob"]

    names, _ = extractor.extract("meeting with Bob the day after tomorrow at 9am")
    assert names == ["Bob"]
