"""Tests for the response envelope and the upstream payload schemas."""

import pytest

from analytics_service.envelope import ApiResponse
from analytics_service.schemas import (
    ChapterSummary,
    NovelSummary,
    Page,
    UserProfile,
    decode_list,
    decode_scalar,
    index_by,
)


class TestApiResponse:
    def test_ok_defaults(self):
        resp = ApiResponse.ok({'id': 1})
        assert resp.success is True
        assert resp.code == 200
        assert resp.message == 'Success'
        assert resp.has_data is True

    def test_error_never_carries_data(self):
        resp = ApiResponse.error(503, 'down')
        assert resp.success is False
        assert resp.data is None
        assert resp.has_data is False

    def test_ok_without_payload_has_no_data(self):
        assert ApiResponse.ok().has_data is False

    def test_success_with_non_200_code_has_no_data(self):
        resp = ApiResponse(success=True, code=201, message='Created', data={'id': 1})
        assert resp.has_data is False

    def test_payload_or(self):
        assert ApiResponse.ok(5).payload_or(0) == 5
        assert ApiResponse.error(500, 'boom').payload_or(0) == 0

    def test_to_dict(self):
        assert ApiResponse.error(404, 'missing').to_dict() == {
            'success': False, 'code': 404, 'message': 'missing', 'data': None,
        }


class TestIndexBy:
    def test_lookup_ignores_batch_order(self):
        novels = (NovelSummary(id=3, title='c'), NovelSummary(id=1, title='a'))
        indexed = index_by(novels)
        assert indexed[1].title == 'a'
        assert indexed[3].title == 'c'

    def test_first_duplicate_wins(self):
        indexed = index_by([NovelSummary(id=1, title='first'), NovelSummary(id=1, title='second')])
        assert indexed[1].title == 'first'

    def test_items_without_key_are_dropped(self):
        assert index_by([NovelSummary(title='orphan')]) == {}

    def test_custom_attribute(self):
        users = [UserProfile(uuid='u-1', username='alice')]
        assert index_by(users, 'uuid')['u-1'].username == 'alice'


class TestDecoding:
    def test_novel_from_camel_case(self):
        novel = NovelSummary.from_dict({
            'id': 42, 'title': 'Coiling Dragon', 'coverImgUrl': 'x.jpg',
            'categoryName': 'Fantasy', 'chapterCnt': 806,
        })
        assert novel.id == 42
        assert novel.cover_img_url == 'x.jpg'
        assert novel.category_name == 'Fantasy'
        assert novel.chapter_cnt == 806
        assert novel.avg_rating is None

    def test_chapter_from_camel_case(self):
        chapter = ChapterSummary.from_dict({'id': 7, 'novelId': 42, 'chapterNumber': 7})
        assert (chapter.id, chapter.novel_id, chapter.chapter_number) == (7, 42, 7)

    def test_non_object_payload_raises(self):
        with pytest.raises(TypeError):
            NovelSummary.from_dict(['not', 'an', 'object'])

    def test_decode_list_returns_tuple(self):
        decoded = decode_list(ChapterSummary.from_dict)([{'id': 1}, {'id': 2}])
        assert isinstance(decoded, tuple)
        assert [c.id for c in decoded] == [1, 2]

    def test_decode_list_rejects_object(self):
        with pytest.raises(TypeError):
            decode_list(ChapterSummary.from_dict)({'id': 1})

    def test_decode_scalar_rejects_bool(self):
        assert decode_scalar(int)(12) == 12
        with pytest.raises(TypeError):
            decode_scalar(int)(True)

    @pytest.mark.parametrize('value', [float('inf'), float('-inf'), float('nan')])
    def test_decode_scalar_rejects_non_finite(self, value):
        with pytest.raises(ValueError):
            decode_scalar(int)(value)

    def test_page_decoder(self):
        page = Page.decoder(UserProfile.from_dict)({
            'content': [{'uuid': 'u-1'}], 'totalElements': 1, 'totalPages': 1,
            'currentPage': 0, 'size': 20,
        })
        assert page.content[0].uuid == 'u-1'
        assert page.total_elements == 1


class TestPageBuild:
    def test_total_pages_rounds_up(self):
        page = Page.build(['a', 'b'], total_elements=5, page=0, size=2)
        assert page.total_pages == 3
        assert page.content == ('a', 'b')

    def test_empty(self):
        page = Page.build([], total_elements=0, page=0, size=20)
        assert page.total_pages == 0
        assert page.content == ()
