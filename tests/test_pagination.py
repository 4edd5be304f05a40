from educentral.pagination import paginate


def test_slices_items_and_reports_range():
    page = paginate(range(1, 24), page=3, per_page=10)
    assert page.items == [21, 22, 23]
    assert page.pages == 3
    assert (page.first_index, page.last_index, page.total) == (21, 23, 23)
    assert page.has_prev and not page.has_next


def test_out_of_range_pages_are_clamped():
    assert paginate(range(5), page=9).page == 1
    assert paginate(range(25), page=0).page == 1
    assert paginate(range(25), page=9).page == 3


def test_empty_list():
    page = paginate([], page=1)
    assert page.items == []
    assert page.pages == 1
    assert page.first_index == 0
    assert page.page_numbers == [1]


def test_page_window_with_ellipses():
    assert paginate(range(30), page=1, per_page=10).page_numbers == [1, 2, 3]
    assert paginate(range(200), page=1, per_page=10).page_numbers == [1, 2, 3, 4, 5, None, 20]
    assert paginate(range(200), page=10, per_page=10).page_numbers == [1, None, 8, 9, 10, 11, 12, None, 20]
    assert paginate(range(200), page=20, per_page=10).page_numbers == [1, None, 16, 17, 18, 19, 20]
