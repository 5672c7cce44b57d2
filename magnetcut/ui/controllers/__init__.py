"""UI Controllers — 위젯과 편집 엔진 사이의 Qt 바인딩.

각 Controller는 QObject를 상속하여 시그널/슬롯 사용 가능.
"""

from magnetcut.ui.controllers.timeline_controller import TimelineController

__all__ = ["TimelineController"]
