"""
Particle viewer GUI for SWARM

Shows the rendered particle canvas with a status line underneath and drives
the simulation from a QTimer, so every tick runs on the GUI thread.
"""

import sys
import numpy as np
from PyQt6.QtWidgets import QApplication, QWidget, QLabel, QVBoxLayout
from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QPixmap, QImage


class ParticleWindow(QWidget):
    """Main window: particle canvas plus status label."""

    def __init__(self, app, config):
        super().__init__()
        self.app = app
        self.config = config
        self.initUI()

    def initUI(self):
        self.setWindowTitle("SWARM")
        width = self.config.get('display', 'window_width', default=1280)
        height = self.config.get('display', 'window_height', default=720)
        self.resize(width, height)
        self.setStyleSheet("background-color: #03070f;")

        self.image_label = QLabel(self)
        self.image_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.image_label.setMinimumSize(1, 1)

        self.status_label = QLabel(self.app.status_text, self)
        self.status_label.setStyleSheet("color: #9fb4d8; font-size: 13px; padding: 4px;")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(self.image_label, 1)
        layout.addWidget(self.status_label, 0)

    def update_frame(self, frame: np.ndarray):
        if frame is None:
            return
        height, width = frame.shape[:2]
        bytes_per_line = 3 * width
        q_img = QImage(frame.data, width, height, bytes_per_line, QImage.Format.Format_RGB888).rgbSwapped()
        self.image_label.setPixmap(QPixmap.fromImage(q_img))

    def update_status(self):
        self.status_label.setText(self.app.info_text)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        size = self.image_label.size()
        self.app.resize(size.width(), size.height())

    def keyPressEvent(self, event):
        key = event.key()
        if key in (Qt.Key.Key_Q, Qt.Key.Key_Escape):
            self.close()
        elif key == Qt.Key.Key_S:
            try:
                if self.app.running:
                    self.app.stop()
                else:
                    self.app.start()
            except RuntimeError as e:
                print(f"⚠ {e}")
            self.update_status()
        elif key == Qt.Key.Key_P:
            self.app.toggle_pause()
        elif key == Qt.Key.Key_D:
            self.app.show_debug = not self.app.show_debug
            print(f"Debug output: {'ON' if self.app.show_debug else 'OFF'}")
        elif key == Qt.Key.Key_F:
            self.app.show_fps = not self.app.show_fps
        else:
            super().keyPressEvent(event)

    def closeEvent(self, event):
        self.app.cleanup()
        super().closeEvent(event)


def run_gui(app, config):
    """
    Show the particle window and tick the application until it is closed.

    Args:
        app: SwarmApplication (constructed, not yet started)
        config: Config instance
    """
    qt_app = QApplication.instance() or QApplication(sys.argv)

    window = ParticleWindow(app, config)
    window.show()
    app.resize(window.image_label.width(), window.image_label.height())
    app.start()

    timer = QTimer()

    def on_tick():
        frame = app.tick()
        if frame is not None:
            window.update_frame(frame)
        window.update_status()
        if app.exit_requested:
            print("🛑 Exit requested, closing window...")
            timer.stop()
            window.close()

    timer.timeout.connect(on_tick)
    timer.start(int(config.get('display', 'tick_interval_ms', default=16)))

    exit_code = qt_app.exec()
    print(f"📺 GUI closed with exit code: {exit_code}")
    return exit_code
