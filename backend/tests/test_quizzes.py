from quiz_api import models


def test_quiz_crud_and_public_listing(client, make_user, make_quiz):
    _, author = make_user('author')
    quiz_id, _ = make_quiz(author, title='Capitals')
    make_quiz(author, correct_indices=(), title='Drafts', is_public=False)

    listing = client.get('/api/quizzes').json()
    assert listing['count'] == 1
    assert listing['data'][0]['title'] == 'Capitals'
    assert listing['data'][0]['created_by']['username'] == 'author'

    detail = client.get(f'/api/quizzes/{quiz_id}').json()['data']
    assert detail['questions_count'] == 3
    assert 'questions' not in detail

    r = client.put(f'/api/quizzes/{quiz_id}', json={'description': 'European capitals'}, headers=author)
    assert r.status_code == 200
    assert r.json()['data']['title'] == 'Capitals'
    assert r.json()['data']['description'] == 'European capitals'


def test_quiz_title_is_validated(client, make_user):
    _, author = make_user('author')
    r = client.post('/api/quizzes', json={'title': '  '}, headers=author)
    assert r.status_code == 422
    body = r.json()
    assert body['success'] is False
    assert 'title' in body['errors']


def test_only_owner_or_admin_may_modify(client, make_user, make_quiz):
    _, author = make_user('author')
    _, other = make_user('other')
    _, admin = make_user('root', role=models.ROLE_ADMIN)
    quiz_id, (q1, _, _) = make_quiz(author)

    assert client.put(f'/api/quizzes/{quiz_id}', json={'title': 'Mine now'}, headers=other).status_code == 403
    r = client.post(f'/api/quizzes/{quiz_id}/questions',
                    json={'question_text': 'Sneaky question?', 'options': ['a', 'b'], 'correct_answer_index': 0},
                    headers=other)
    assert r.status_code == 403
    assert r.json()['message'] == 'Not authorized to add questions to this quiz'
    assert client.delete(f'/api/questions/{q1}', headers=other).status_code == 403
    assert client.put(f'/api/quizzes/{quiz_id}', json={'title': 'Moderated'}, headers=admin).status_code == 200


def test_question_validation_messages(client, make_user, make_quiz):
    _, author = make_user('author')
    quiz_id, _ = make_quiz(author, correct_indices=())
    r = client.post(f'/api/quizzes/{quiz_id}/questions',
                    json={'question_text': 'Hi', 'options': ['only one'], 'correct_answer_index': 0},
                    headers=author)
    assert r.status_code == 422
    errors = r.json()['errors']
    assert set(errors) == {'question_text', 'options'}

    r = client.post(f'/api/quizzes/{quiz_id}/questions',
                    json={'question_text': 'Pick one option', 'options': ['a', 'b'], 'correct_answer_index': 2},
                    headers=author)
    assert r.status_code == 422
    assert r.json()['errors'] == {'correct_answer_index': 'Correct answer must be a valid option index'}


def test_correct_answers_hidden_from_takers(client, make_user, make_quiz):
    _, author = make_user('author')
    _, taker = make_user('taker')
    _, admin = make_user('root', role=models.ROLE_ADMIN)
    quiz_id, _ = make_quiz(author, correct_indices=(2, 1))

    for_taker = client.get(f'/api/quizzes/{quiz_id}/questions', headers=taker).json()
    assert for_taker['count'] == 2
    assert all('correct_answer_index' not in q for q in for_taker['data'])

    for headers in (author, admin):
        data = client.get(f'/api/quizzes/{quiz_id}/questions', headers=headers).json()['data']
        assert [q['correct_answer_index'] for q in data] == [2, 1]


def test_question_update_revalidates_merged_fields(client, make_user, make_quiz):
    _, author = make_user('author')
    _, (q1,) = make_quiz(author, correct_indices=(0,))
    r = client.put(f'/api/questions/{q1}', json={'correct_answer_index': 5}, headers=author)
    assert r.status_code == 422
    r = client.put(f'/api/questions/{q1}', json={'options': ['x', 'y'], 'correct_answer_index': 1}, headers=author)
    assert r.status_code == 200
    data = r.json()['data']
    assert data['options'] == ['x', 'y']
    assert data['correct_answer_index'] == 1
    assert data['question_text'] == 'Question number 1?'


def test_deleting_quiz_keeps_existing_results(client, make_user, make_quiz):
    _, author = make_user('author')
    _, taker = make_user('taker')
    quiz_id, (q1, _, _) = make_quiz(author)
    submitted = client.post(f'/api/quizzes/{quiz_id}/submit',
                            json={'answers': [{'question_id': q1, 'selected_answer': 1}]}, headers=taker)
    result_id = submitted.json()['data']['result']['id']

    r = client.delete(f'/api/quizzes/{quiz_id}', headers=author)
    assert r.status_code == 200
    assert client.get(f'/api/quizzes/{quiz_id}').status_code == 404
    assert client.get(f'/api/questions/{q1}').status_code in (404, 405)

    mine = client.get('/api/results/my', headers=taker).json()
    assert mine['count'] == 1
    assert mine['data'][0]['quiz'] is None
    detail = client.get(f'/api/results/{result_id}', headers=taker).json()['data']
    assert detail['score'] == 1
    assert detail['answers'][0]['question'] is None

    again = client.post(f'/api/quizzes/{quiz_id}/submit', json={'answers': []}, headers=taker)
    assert again.status_code == 404


def test_quiz_created_after_delete_starts_clean(client, make_user, make_quiz):
    _, author = make_user('author')
    _, taker = make_user('taker')
    old_quiz, (old_q1, _, _) = make_quiz(author, title='Old')
    submitted = client.post(f'/api/quizzes/{old_quiz}/submit',
                            json={'answers': [{'question_id': old_q1, 'selected_answer': 1}]}, headers=taker)
    result_id = submitted.json()['data']['result']['id']
    assert client.delete(f'/api/quizzes/{old_quiz}', headers=author).status_code == 200

    new_quiz, (new_q1, _, _) = make_quiz(author, title='New')
    assert new_quiz != old_quiz
    assert new_q1 != old_q1

    board = client.get(f'/api/quizzes/{new_quiz}/results', headers=author).json()
    assert board['count'] == 0
    assert board['data'] == []

    r = client.post(f'/api/quizzes/{new_quiz}/submit',
                    json={'answers': [{'question_id': new_q1, 'selected_answer': 1}]}, headers=taker)
    assert r.status_code == 201
    assert client.get(f'/api/quizzes/{new_quiz}/results', headers=author).json()['count'] == 1

    detail = client.get(f'/api/results/{result_id}', headers=taker).json()['data']
    assert detail['quiz'] is None
    assert detail['answers'][0]['question'] is None


def test_delete_single_question(client, make_user, make_quiz):
    _, author = make_user('author')
    quiz_id, (q1, q2, _) = make_quiz(author)
    assert client.delete(f'/api/questions/{q1}', headers=author).status_code == 200
    assert client.get(f'/api/quizzes/{quiz_id}').json()['data']['questions_count'] == 2
    assert client.delete(f'/api/questions/{q1}', headers=author).status_code == 404
