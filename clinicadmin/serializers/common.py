from rest_framework import serializers

from clinicadmin.services.common import clamp_paging


class PageQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=200)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)


def page_payload(data, total: int, page=None, page_size=None, *, default_size=None) -> dict:
    page, page_size = clamp_paging(page, page_size, default_size=default_size)
    return {'success': True, 'data': data,
            'pagination': {'total': total, 'page': page, 'pageSize': page_size}}
