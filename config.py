import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 시험 세션 설정
EXAM_TIME_LIMIT = int(os.getenv("EXAM_TIME_LIMIT", "5400"))          # 90분
AUTO_SAVE_INTERVAL = int(os.getenv("AUTO_SAVE_INTERVAL", "30"))      # 자동 저장 주기 (초)
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))                  # 완료·일시정지 후 방치된 세션 보관 시간
CLEANUP_INTERVAL = int(os.getenv("CLEANUP_INTERVAL", "300"))         # 만료 세션 정리 주기

# 적응형 출제 설정
DEFAULT_TOTAL_QUESTIONS = int(os.getenv("DEFAULT_TOTAL_QUESTIONS", "60"))
WEAK_AREA_THRESHOLD = float(os.getenv("WEAK_AREA_THRESHOLD", "70"))
STRONG_AREA_THRESHOLD = float(os.getenv("STRONG_AREA_THRESHOLD", "80"))
WEAK_AREA_ALLOCATION_PERCENTAGE = float(os.getenv("WEAK_AREA_ALLOCATION_PERCENTAGE", "60"))
RECENT_RESULTS_WINDOW = 3       # 취약 영역 판단에 사용하는 최근 시험 수

# 채점 설정
PASS_SCORE = float(os.getenv("PASS_SCORE", "70"))
RUSHING_THRESHOLD = 30          # 초 미만이면 서두른 문제
SLOW_THRESHOLD = 300            # 초 초과이면 지연 문제
