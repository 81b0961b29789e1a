"""
Bitable v1 table record search.

Usage:
    request = (
        SearchAppTableRecordRequest.builder()
        .app_token("bascnxxx")
        .table_id("tblxxx")
        .page_size(20)
        .filter(SearchFilterInfo(
            conjunction="and",
            conditions=[SearchCondition(field_name="Status", operator="is", value=["Done"])],
        ))
        .build()
    )
    resp = await client.bitable.app_table_record.search(request)
    for record in resp.data.items:
        print(record.record_id, record.fields)

API Reference:
    https://open.feishu.cn/document/server-docs/docs/bitable-v1/app-table-record/search
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from openlark.core.constants import AccessTokenType
from openlark.core.request import ApiRequest, RequestOption
from openlark.core.response import BaseResponse
from openlark.core.token import TokenStore
from openlark.core.transport import Transport

logger = logging.getLogger(__name__)

SEARCH_PATH = "/open-apis/bitable/v1/apps/{app_token}/tables/{table_id}/records/search"


# =============================================================================
# Request Schemas
# =============================================================================


class SearchSort(BaseModel):
    """Sort condition."""

    field_name: str | None = Field(None, max_length=1000)
    desc: bool | None = Field(None, description="Descending order, default false")


class SearchCondition(BaseModel):
    """
    Single filter condition.

    Operators: is, isNot, contains, doesNotContain, isEmpty, isNotEmpty,
    isGreater, isGreaterEqual, isLess, isLessEqual.
    """

    field_name: str = Field(..., max_length=1000)
    operator: str
    value: list[str] | None = Field(None, max_length=10)


class SearchFilterInfo(BaseModel):
    """Filter: conditions joined by "and" / "or"."""

    conjunction: str | None = Field(None, description="and | or")
    conditions: list[SearchCondition] | None = Field(None, max_length=50)


class SearchAppTableRecordBody(BaseModel):
    view_id: str | None = Field(None, max_length=50)
    field_names: list[str] | None = Field(None, max_length=200)
    sort: list[SearchSort] | None = Field(None, max_length=100)
    filter: SearchFilterInfo | None = None
    automatic_fields: bool | None = None


# =============================================================================
# Request + Builder
# =============================================================================


@dataclass(frozen=True)
class SearchAppTableRecordRequest:
    """Immutable search request; build it with ``builder()``."""

    app_token: str
    table_id: str
    api_request: ApiRequest

    @staticmethod
    def builder() -> AppTableRecordSearchRequestBuilder:
        return AppTableRecordSearchRequestBuilder()


@dataclass
class AppTableRecordSearchRequestBuilder:
    """Fluent builder; every setter returns the builder."""

    _app_token: str = ""
    _table_id: str = ""
    _query: dict[str, str] = field(default_factory=dict)
    _body: dict[str, Any] = field(default_factory=dict)

    def app_token(self, app_token: str) -> AppTableRecordSearchRequestBuilder:
        """Bitable app token."""
        self._app_token = str(app_token)
        return self

    def table_id(self, table_id: str) -> AppTableRecordSearchRequestBuilder:
        self._table_id = str(table_id)
        return self

    def user_id_type(self, user_id_type: str) -> AppTableRecordSearchRequestBuilder:
        """open_id (default), union_id or user_id."""
        self._query["user_id_type"] = str(user_id_type)
        return self

    def page_token(self, page_token: str) -> AppTableRecordSearchRequestBuilder:
        """Pagination token from the previous page; omit for the first page."""
        self._query["page_token"] = str(page_token)
        return self

    def page_size(self, page_size: int) -> AppTableRecordSearchRequestBuilder:
        self._query["page_size"] = str(page_size)
        return self

    def view_id(self, view_id: str) -> AppTableRecordSearchRequestBuilder:
        """Ignored by the platform when filter or sort is set."""
        self._body["view_id"] = view_id
        return self

    def field_names(self, field_names: list[str]) -> AppTableRecordSearchRequestBuilder:
        self._body["field_names"] = list(field_names)
        return self

    def sort(self, *sort: SearchSort) -> AppTableRecordSearchRequestBuilder:
        self._body["sort"] = list(sort)
        return self

    def filter(self, filter: SearchFilterInfo) -> AppTableRecordSearchRequestBuilder:
        self._body["filter"] = filter
        return self

    def automatic(self, automatic: bool) -> AppTableRecordSearchRequestBuilder:
        """Return automatically computed fields (created time, etc.)."""
        self._body["automatic_fields"] = automatic
        return self

    def build(self) -> SearchAppTableRecordRequest:
        if not self._app_token or not self._table_id:
            raise ValueError("app_token and table_id are required")

        try:
            body = SearchAppTableRecordBody(**self._body)
        except ValidationError as e:
            raise ValueError(f"Invalid search body: {e.error_count()} error(s)") from e

        api_request = ApiRequest(
            method="POST",
            path=SEARCH_PATH,
            path_params={"app_token": self._app_token, "table_id": self._table_id},
            query_params=dict(self._query),
            token_types=(AccessTokenType.TENANT, AccessTokenType.USER),
            response_model=SearchAppTableRecordResponse,
        ).with_body(body)

        return SearchAppTableRecordRequest(
            app_token=self._app_token,
            table_id=self._table_id,
            api_request=api_request,
        )


# =============================================================================
# Response Schemas
# =============================================================================


class Person(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str | None = None
    en_name: str | None = None
    email: str | None = None


class Record(BaseModel):
    """A table row."""

    model_config = ConfigDict(extra="ignore")

    record_id: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_by: Person | None = None
    created_time: int | None = None  # epoch milliseconds
    last_modified_by: Person | None = None
    last_modified_time: int | None = None


class SearchAppTableRecordResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[Record] = Field(default_factory=list)
    has_more: bool
    page_token: str | None = None
    total: int


# =============================================================================
# Service
# =============================================================================


class AppTableRecordService:
    """Bitable v1 app table record endpoints."""

    def __init__(self, transport: Transport, store: TokenStore | None = None):
        self._transport = transport
        self._store = store

    async def search(
        self,
        request: SearchAppTableRecordRequest,
        option: RequestOption | None = None,
    ) -> BaseResponse[SearchAppTableRecordResponse]:
        """Search records in a table (tenant or user token)."""
        logger.debug(f"[lark_bitable] Searching {request.app_token}/{request.table_id}")
        return await self._transport.request(request.api_request, self._store, option)
