"""Vietnamese display labels shared by the workbook and the preview."""

from club_reports.models import ActivityStatus, ActivityType, ApprovalStatus
from club_reports.schemas.reports import TemporalStatus

NOT_AVAILABLE = "N/A"
NOT_SET = "Chưa có"

TYPE_LABELS = {
    ActivityType.SINGLE_DAY: "Một ngày",
    ActivityType.MULTIPLE_DAYS: "Nhiều ngày",
}

STATUS_LABELS = {
    ActivityStatus.DRAFT: "Nháp",
    ActivityStatus.PUBLISHED: "Đã xuất bản",
    ActivityStatus.ONGOING: "Đang diễn ra",
    ActivityStatus.COMPLETED: "Hoàn thành",
    ActivityStatus.CANCELLED: "Đã hủy",
    ActivityStatus.POSTPONED: "Tạm hoãn",
}

TEMPORAL_LABELS = {
    TemporalStatus.UPCOMING: "Sắp diễn ra",
    TemporalStatus.ONGOING: "Đang diễn ra",
    TemporalStatus.PAST: "Đã kết thúc",
}

DAY_SLOT_LABELS = {
    "morning": "Sáng",
    "afternoon": "Chiều",
    "evening": "Tối",
}

# Participant table cells of non-approved buckets:
# (completion column, checked-in column, first check-in column)
BUCKET_PLACEHOLDERS = {
    ApprovalStatus.PENDING: ("Chờ duyệt", "Chưa", "Chưa điểm danh"),
    ApprovalStatus.REJECTED: ("Từ chối", "Không", "Không điểm danh"),
    ApprovalStatus.REMOVED: ("Đã xóa", "Không", "Không điểm danh"),
}
