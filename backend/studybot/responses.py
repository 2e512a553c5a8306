"""Canned bot replies (Vietnamese)."""

SEPARATOR = "-" * 50
ASSIGNMENT_SEPARATOR = "-" * 36

HELP_TEXT = (
    "📚 **DANH SÁCH LỆNH**\n\n"
    "**Cơ bản:**\n"
    "• /help - Hiển thị trợ giúp\n"
    "  Ví dụ: /help\n\n"
    "• /info - Thông tin bot\n"
    "  Ví dụ: /info\n\n"
    "• /menu - Menu lệnh\n"
    "  Ví dụ: /menu\n\n"
    "**Đăng ký:**\n"
    "• /register - Đăng ký nhận thông báo\n"
    "  Ví dụ: /register\n\n"
    "• /unregister - Hủy đăng ký\n"
    "  Ví dụ: /unregister\n\n"
    "• /notify [on|off] - Bật/Tắt thông báo\n"
    "  Ví dụ: /notify on hoặc /notify off\n\n"
    "**Lịch học:**\n"
    "• /today - Xem lịch hôm nay\n"
    "  Ví dụ: /today\n\n"
    "• /class [Mã môn] - Chi tiết lớp học\n"
    "  Ví dụ: /class MA004\n"
    "  Hoặc: /class (xem tất cả)\n\n"
    "**Bài tập:**\n"
    "• /assignments - Danh sách bài tập\n"
    "  Ví dụ: /assignments\n\n"
    "• /status_assignment Mã bài tập|true/false - Cập nhật trạng thái\n"
    "  Ví dụ: /status_assignment 12345|true\n\n"
    "• /remove_assignment Mã bài tập - Xóa bài tập\n"
    "  Ví dụ: /remove_assignment 12345\n\n"
    "**Tài liệu:**\n"
    "• /docs [Mã môn] - Truy cập tài liệu\n"
    "  Ví dụ: /docs MA004\n\n"
    "💡 Gửi /menu để xem menu tương tác"
)

INFO_TEXT = (
    "ℹ️ **STUDY OPTIMIZER BOT**\n\n"
    "🎯 **Mục đích:** Hỗ trợ quản lý lịch học và bài tập\n\n"
    "✨ **Tính năng:**\n"
    "• Thông báo lịch học hàng ngày\n"
    "• Quản lý bài tập\n"
    "• Truy cập tài liệu học tập\n"
    "• Theo dõi tiến độ học tập\n\n"
    "📧 Hỗ trợ: Liên hệ admin nếu cần trợ giúp\n"
    "🔖 Phiên bản thử nghiệm: 1.0.0"
)

MENU_TEXT = "📋 **MENU LỆNH**\n\nChọn một lệnh bên dưới hoặc gửi /help để xem hướng dẫn chi tiết."

MENU_BUTTONS = [
    ("📅 Lịch hôm nay", "/today"),
    ("📝 Bài tập", "/assignments"),
    ("📚 Tài liệu", "/docs"),
    ("⚙️ Cài đặt", "/notify"),
]

REGISTER_SUCCESS = (
    "✅ **ĐĂNG KÝ THÀNH CÔNG!**\n\n"
    "Bạn đã đăng ký nhận thông báo lịch học từ Study Optimizer.\n\n"
    "📅 Bạn sẽ nhận thông báo:\n"
    "• Mỗi sáng trước khi bắt đầu ngày học\n"
    "• Nhắc nhở về bài tập sắp đến hạn\n"
    "• Cập nhật lịch học khi có thay đổi\n\n"
    "💡 Gửi /notify off để tạm tắt thông báo."
)

REGISTER_ENROLLED = (
    "🎊 Bạn đã được đăng ký vào các lớp học. Sử dụng lệnh /class để xem chi tiết lớp học "
    "của bạn. Hoặc có thể liên hệ với admin để thay đổi lớp học nhé!"
)

ALREADY_REGISTERED = (
    "ℹ️ Bạn đã đăng ký trước đó rồi.\n\n"
    "Bạn đang nhận thông báo lịch học hàng ngày.\n"
    "Gửi /unregister nếu muốn hủy đăng ký."
)

UNREGISTER_SUCCESS = (
    "✅ **HỦY ĐĂNG KÝ THÀNH CÔNG**\n\n"
    "Bạn đã hủy đăng ký khỏi Study Optimizer.\n\n"
    "❌ Bạn sẽ không còn nhận:\n"
    "• Thông báo lịch học hàng ngày\n"
    "• Nhắc nhở về bài tập\n\n"
    "💡 Gửi /register bất cứ lúc nào để đăng ký lại."
)

NOT_REGISTERED = "ℹ️ Bạn chưa đăng ký nhận thông báo.\n\nGửi /register để bắt đầu nhận thông báo lịch học."

NO_CLASSES = (
    "Bạn chưa đăng ký lớp học nào. Vui lòng sử dụng lệnh /register để đăng ký lớp học "
    "hoặc liên hệ với admin để biết thêm chi tiết. 😊"
)
CLASS_NOT_FOUND = "❌ Không tìm thấy lớp học với mã: {code}"
CLASS_HEADER = "📚 Lớp học của bạn:"
CLASS_FOOTER = "Chúc bạn một tuần học tập hiệu quả! 🎉"

TODAY_EMPTY = "Hôm nay bạn không có lịch học nào. Chúc bạn một ngày vui vẻ! 🎉"
TODAY_HEADER = "📅 Lịch học hôm nay của bạn:"
PRE_CLASS_REMINDER = (
    "⏰ Nhắc nhở: Môn {subject} của bạn sẽ bắt đầu vào lúc {start_time} hôm nay. Hãy chuẩn bị sẵn sàng!"
)
DUE_REMINDER_HEADER = "📌 Nhắc nhở: Bạn có {count} bài tập sắp đến hạn:"
DUE_REMINDER_FOOTER = "Hãy hoàn thành chúng đúng hạn nhé! 💪"

PERMISSION_DENIED = "Bạn không có quyền sử dụng lệnh này."
ADD_ASSIGNMENT_SYNTAX = (
    "Cú pháp thêm bài tập không đúng. Vui lòng sử dụng: /add_assignment_class "
    '{"name": "Tên bài tập", "classSubjectId": "Mã lớp", "deadline": "YYYY-MM-DD HH:MM"}'
)
ADD_ASSIGNMENT_CLASS_NOT_FOUND = (
    "Không tìm thấy môn học với mã hoặc tên chứa: {code}. Vui lòng kiểm tra lại."
)
ADD_ASSIGNMENT_BAD_DATE = "Định dạng ngày tháng không đúng. Vui lòng sử dụng định dạng: YYYY-MM-DD HH:MM"
ADD_ASSIGNMENT_DUPLICATE = (
    'Bài tập với tên "{name}" thuộc môn {subject} và hạn nộp vào {date} đã tồn tại. '
    "Vui lòng kiểm tra lại."
)
ADD_ASSIGNMENT_SUCCESS = "Đã thêm bài tập: {name} thuộc môn {subject} với hạn nộp vào {date}"
ADD_ASSIGNMENT_ASSIGNED = "Đã gán bài tập cho {count} người dùng."

ASSIGNMENTS_EMPTY = "Bạn chưa có bài tập nào."
ASSIGNMENTS_HEADER = "🫣 Danh sách bài tập của bạn:"
ASSIGNMENTS_FOOTER = "Hãy cố gắng hoàn thành đúng hạn nhé! 😊"
UNKNOWN_SUBJECT = "Không xác định"

REMOVE_ASSIGNMENT_SYNTAX = "Cú pháp xóa bài tập không đúng. Vui lòng sử dụng: /remove_assignment Mã Bài Tập"
ASSIGNMENT_NOT_FOUND = "Không tìm thấy bài tập với mã: {id}. Vui lòng kiểm tra lại cú pháp."
REMOVE_ASSIGNMENT_SUCCESS = 'Đã xóa bài tập "{name}" khỏi danh sách của bạn.'

STATUS_ASSIGNMENT_SYNTAX = (
    "Cú pháp cập nhật trạng thái bài tập không đúng. Vui lòng sử dụng: "
    "/status_assignment Mã Bài Tập|completed(true/false)"
)
STATUS_ASSIGNMENT_SUCCESS = 'Đã cập nhật trạng thái bài tập "{name}" môn [{subject}] thành {status}.'
STATUS_COMPLETED = "hoàn thành ✅"
STATUS_PENDING = "chưa hoàn thành ❌"

NOTIFY_SYNTAX = "Cú pháp bật/tắt thông báo không đúng. Vui lòng sử dụng: /notify on hoặc /notify off"
NOTIFY_SUCCESS = "Chào {name}, Bạn đã {state} thông báo nhắc nhở lịch học và bài tập."
NOTIFY_OFF_SUFFIX = " Bạn sẽ không nhận được thông báo nhắc nhở về bài tập nữa ạ!."

DOCS_LIST_HEADER = "📚 Danh sách tài liệu lớp học:"
DOCS_MATCH = "📚 Tài liệu cho lớp học {code}:\n{url}"
DOCS_NOT_FOUND = "❌ Không tìm thấy tài liệu cho mã môn: {code}\n\n💡 Gửi /class để xem danh sách môn học"

DEFAULT_REPLY = (
    "Chào bạn {name}, hiện tại tôi chỉ xử lý được tin nhắn theo cú pháp đã định nghĩa. "
    "Vui lòng thử lại /help để biết thêm chi tiết ạ! 😊"
)

ERROR_GENERAL = "❌ Đã xảy ra lỗi. Vui lòng thử lại sau.\n\n💡 Gửi /help nếu cần trợ giúp."

IMAGE_ACK = "Chào bạn {name}, bạn vừa gửi một bức ảnh dễ thương! 😊"
STICKER_ACKS = [
    "😘 Sticker dễ thương quá!",
    "😘 Cảm ơn bạn đã gửi sticker!",
    "😘 Sticker này thật vui nhộn!",
    "😘 Mình rất thích sticker bạn gửi!",
    "😘 Sticker siêu dễ thương luôn!",
    "😘 Cảm ơn bạn đã chia sẻ sticker này với mình!",
]
UNSUPPORTED_ACK = "Xin lỗi, hiện tại mình chưa hỗ trợ loại tin nhắn này. Gửi /help để xem các lệnh có sẵn nhé!"
