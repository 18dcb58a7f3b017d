# config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    ELEFAN 분석 기본 설정 관리 (Pydantic V2)
    .env 파일 또는 ELEFAN_ 접두사 환경 변수에서 로드하며, 없을 경우 기본값을 사용합니다.
    """

    # Project Info
    PROJECT_NAME: str = "ELEFAN"
    VERSION: str = "1.0.0"

    # Restructuring Settings
    MA: int = 5
    ADDL_SQRT: bool = False
    AGEMAX: Optional[int] = None

    # Response Surface / K-Scan
    GRID_N_ANCHOR: int = 12
    N_JOBS: int = 1

    # Simulated Annealing
    SA_MAXITER: int = 200
    SA_N_INNER: int = 20
    SA_INIT_TEMP: float = 1.0
    SA_COOLING: float = 0.97
    SA_STEP: float = 0.25
    SA_MAX_TIME: Optional[float] = None

    # Genetic Algorithm
    GA_POPSIZE: int = 50
    GA_MAXITER: int = 100
    GA_RUN: int = 30
    GA_PMUTATION: float = 0.1
    GA_PCROSSOVER: float = 0.8
    GA_ELITISM: int = 3

    # .env 파일 로드 설정
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="ELEFAN_"
    )


# 싱글톤 인스턴스 생성
settings = Settings()
