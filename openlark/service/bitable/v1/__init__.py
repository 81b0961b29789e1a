from openlark.service.bitable.v1.app_table_record import (
    AppTableRecordSearchRequestBuilder,
    AppTableRecordService,
    Person,
    Record,
    SearchAppTableRecordRequest,
    SearchAppTableRecordResponse,
    SearchCondition,
    SearchFilterInfo,
    SearchSort,
)

__all__ = [
    "AppTableRecordSearchRequestBuilder",
    "AppTableRecordService",
    "Person",
    "Record",
    "SearchAppTableRecordRequest",
    "SearchAppTableRecordResponse",
    "SearchCondition",
    "SearchFilterInfo",
    "SearchSort",
]
