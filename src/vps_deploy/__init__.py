"""
VPS Config Deployer
VPS 구성 파일(nftables, sshd, K3s, Traefik 등)을 템플릿으로부터 안전하게 배포하는 도구

Features:
- ${VAR} 형식 템플릿 치환 (.env 파일 기반)
- 타임스탬프 백업 및 최근 5개 보존
- 임시 파일 + rename 기반 원자적 배포
- 최신 백업으로 롤백
- YAML 매니페스트 기반 일괄 배포 및 리포트 생성
"""

__version__ = "1.0.0"
__author__ = "DevOps Team"
