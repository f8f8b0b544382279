"""
Tests for disaster data access against the in-memory Realtime Database
"""


def test_create_and_find(disaster_repository):
    created = disaster_repository.create_disaster({'title': 'Flood', 'tags': ['flood']})

    found = disaster_repository.find_disaster_by_id(created['id'])

    assert found['title'] == 'Flood'
    assert found['id'] == created['id']
    assert 'created_at' in found


def test_find_missing(disaster_repository):
    assert disaster_repository.find_disaster_by_id('nope') is None
    assert disaster_repository.find_disaster_by_id('') is None


def test_list_newest_first_with_tag_filter(disaster_repository, fake_db):
    fake_db.reference('disasters/a').set({'title': 'Old', 'tags': ['flood'], 'created_at': '2024-07-01T00:00:00+00:00'})
    fake_db.reference('disasters/b').set({'title': 'New', 'tags': ['flood'], 'created_at': '2024-07-20T00:00:00+00:00'})
    fake_db.reference('disasters/c').set({'title': 'Fire', 'tags': ['fire'], 'created_at': '2024-07-21T00:00:00+00:00'})

    assert [d['id'] for d in disaster_repository.list_disasters()] == ['c', 'b', 'a']
    assert [d['id'] for d in disaster_repository.list_disasters(tag='flood')] == ['b', 'a']


def test_update_appends_audit_entry(disaster_repository):
    created = disaster_repository.create_disaster({'title': 'Flood', 'description': 'x'})

    updated = disaster_repository.update_disaster(created['id'], {'title': 'Big Flood', 'description': None}, 'citizen1')
    updated = disaster_repository.update_disaster(created['id'], {'title': 'Huge Flood'}, 'netrunnerX')

    stored = disaster_repository.find_disaster_by_id(created['id'])
    assert stored['title'] == 'Huge Flood'
    assert stored['description'] == 'x'
    assert [entry['user_id'] for entry in stored['audit_trail']] == ['citizen1', 'netrunnerX']
    assert updated == stored


def test_update_missing(disaster_repository):
    assert disaster_repository.update_disaster('nope', {'title': 'x'}, 'citizen1') is None
    assert disaster_repository.update_coordinates('nope', 1.0, 2.0) is None


def test_delete(disaster_repository):
    created = disaster_repository.create_disaster({'title': 'Flood'})

    assert disaster_repository.delete_disaster(created['id']) is True
    assert disaster_repository.find_disaster_by_id(created['id']) is None
    assert disaster_repository.delete_disaster(created['id']) is False


def test_list_resources_for_disaster(disaster_repository, fake_db):
    fake_db.reference('resources/r1').set({'disaster_id': 'd1', 'name': 'Shelter'})
    fake_db.reference('resources/r2').set({'disaster_id': 'd2', 'name': 'Hospital'})

    assert disaster_repository.list_resources('d1') == [{'disaster_id': 'd1', 'name': 'Shelter', 'id': 'r1'}]
    assert disaster_repository.list_resources('none') == []
