import pytest

from services.binder_viewport import BinderViewport, device_from_user_agent


def test_desktop_wraps_content_in_covers():
    viewport = BinderViewport("desktop")
    pages = viewport.build_pages(list(range(18)))

    # cover, 2 content pages, cover
    assert len(pages) == 4
    assert pages[0] == [None] * 9
    assert pages[1] == list(range(9))
    assert pages[2] == list(range(9, 18))
    assert pages[3] == [None] * 9


def test_desktop_adds_blank_back_for_odd_page_count():
    pages = BinderViewport("desktop").build_pages(list(range(10)))

    # cover, 2 content pages (second padded), cover
    assert len(pages) == 4
    assert pages[2] == [9] + [None] * 8

    odd = BinderViewport("desktop").build_pages(list(range(5)))
    assert len(odd) == 4
    assert odd[2] == [None] * 9


def test_mobile_has_no_covers():
    pages = BinderViewport("mobile").build_pages(list(range(18)))
    assert len(pages) == 2


def test_cover_classification_is_desktop_only():
    desktop = BinderViewport("desktop")
    assert desktop.is_cover_page(1, 6)
    assert desktop.is_cover_page(6, 6)
    assert not desktop.is_cover_page(2, 6)
    assert not BinderViewport("mobile").is_cover_page(1, 4)


def test_display_numbers_skip_the_front_cover():
    assert BinderViewport("desktop").display_page_number(2) == 1
    assert BinderViewport("mobile").display_page_number(2) == 2


def test_page_group_navigation_stays_in_bounds():
    viewport = BinderViewport("desktop")
    total = viewport.total_pages_for(2)  # 4 content pages + 2 covers

    assert total == 6
    assert viewport.max_page_group(total) == 2
    assert not viewport.go_prev()
    assert viewport.go_next(total)
    assert viewport.go_next(total)
    assert not viewport.go_next(total)
    assert viewport.page_group == 2
    assert viewport.can_go_prev()


def test_mobile_page_groups_are_single_pages():
    viewport = BinderViewport("mobile")
    total = viewport.total_pages_for(3)

    assert total == 6
    assert viewport.max_page_group(total) == 5
    viewport.go_to(4, total)
    assert viewport.start_page_index() == 4
    assert viewport.visible_pages(["p0", "p1", "p2", "p3", "p4", "p5"]) == ["p4"]


def test_visible_pages_on_desktop_returns_a_spread():
    viewport = BinderViewport("desktop", page_group=1)
    assert viewport.visible_pages(["c", "p1", "p2", "c"]) == ["p2", "c"]


def test_clamp_after_shrink():
    viewport = BinderViewport("desktop", page_group=3)
    assert viewport.clamp(viewport.total_pages_for(1)) == 1
    assert viewport.go_to(-4, 10) == 0


def test_max_page_group_never_negative():
    assert BinderViewport("mobile").max_page_group(0) == 0


def test_unknown_device_rejected():
    with pytest.raises(ValueError):
        BinderViewport("tablet")


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Mobile/15E148", "mobile"),
        ("Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0", "desktop"),
        (None, "desktop"),
    ],
)
def test_device_from_user_agent(user_agent, expected):
    assert device_from_user_agent(user_agent) == expected
