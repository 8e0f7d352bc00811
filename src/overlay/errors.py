"""오버레이 서버 예외."""


class OverlayError(Exception):
    """오버레이 서버 공통 예외"""


class FolderError(OverlayError):
    """이미지 폴더 설정 오류. 해결될 때까지 스캔 불가, 화면에 차단 상태로 표시."""


class FolderNotFoundError(FolderError):
    """설정된 이미지 폴더가 없거나 디렉터리가 아님."""

    def __init__(self, folder):
        self.folder = folder
        super().__init__(f"Folder ./{folder} not found")


class FolderUnreadableError(FolderError):
    """폴더는 있지만 목록을 읽을 수 없음 (권한 등)."""

    def __init__(self, folder, cause: Exception):
        self.folder = folder
        self.cause = cause
        super().__init__(f"Folder ./{folder} unreadable ({cause})")


class ImageLoadError(OverlayError):
    """이미지 파일 읽기 실패. 브로드캐스트는 건너뛰고 클라이언트는 기존 이미지 유지."""

    def __init__(self, name: str, cause: Exception):
        self.name = name
        self.cause = cause
        super().__init__(f"Failed to load file: {name} ({cause})")


class ConnectionClosedError(OverlayError):
    """이미 닫힌 연결로 전송 시도."""
