class PlacesError(Exception):
    """장소/태그/폴더 코어에서 발생하는 모든 오류의 기반 클래스"""


class InvalidInput(PlacesError, ValueError):
    """호출자가 넘긴 값이 잘못됨 (빈 태그 이름, 다른 사용자의 id 등). 부분 적용 없음."""


class StorageError(PlacesError):
    """DB 오류 또는 타임아웃"""


class StoreUnavailable(StorageError):
    """
    DB 자체에 접근할 수 없어 가져오기 전체를 중단함.
    report 에는 중단 전까지 커밋된 행의 결과가 담긴다.
    """

    def __init__(self, message, report=None):
        super().__init__(message)
        self.report = report


class StreamError(PlacesError):
    """업로드된 내보내기 파일 자체를 읽을 수 없음 (인코딩/CSV 손상)"""
