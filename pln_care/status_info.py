from __future__ import annotations

from typing import Dict

from .enums import ComplaintStatus

# Shown on the public tracking page
STATUS_INFO: Dict[ComplaintStatus, Dict[str, str]] = {
    ComplaintStatus.PENDING: {
        "label": "Menunggu Review",
        "description": "Laporan Anda sedang menunggu untuk ditinjau oleh admin",
        "color": "gray",
    },
    ComplaintStatus.REVIEWED: {
        "label": "Sudah Ditinjau",
        "description": "Laporan Anda telah ditinjau dan akan segera ditindaklanjuti",
        "color": "blue",
    },
    ComplaintStatus.ASSIGNED: {
        "label": "Ditugaskan",
        "description": "Petugas lapangan telah ditugaskan untuk menangani laporan Anda",
        "color": "blue",
    },
    ComplaintStatus.ON_THE_WAY: {
        "label": "Petugas Dalam Perjalanan",
        "description": "Petugas sedang menuju lokasi",
        "color": "purple",
    },
    ComplaintStatus.WORKING: {
        "label": "Sedang Dikerjakan",
        "description": "Petugas sedang mengerjakan perbaikan",
        "color": "yellow",
    },
    ComplaintStatus.COMPLETED: {
        "label": "Selesai Dikerjakan",
        "description": "Pekerjaan selesai, menunggu verifikasi admin",
        "color": "orange",
    },
    ComplaintStatus.APPROVED: {
        "label": "Disetujui",
        "description": "Laporan pekerjaan telah disetujui",
        "color": "green",
    },
    ComplaintStatus.RESOLVED: {
        "label": "Selesai",
        "description": "Laporan Anda telah selesai ditangani",
        "color": "green",
    },
    ComplaintStatus.REVISION_NEEDED: {
        "label": "Perlu Revisi",
        "description": "Pekerjaan perlu dilakukan perbaikan",
        "color": "orange",
    },
    ComplaintStatus.REJECTED: {
        "label": "Ditolak",
        "description": "Laporan tidak dapat diproses",
        "color": "red",
    },
    ComplaintStatus.CANCELLED: {
        "label": "Dibatalkan",
        "description": "Laporan dibatalkan",
        "color": "red",
    },
}


def get_status_info(status: ComplaintStatus | str) -> Dict[str, str]:
    try:
        return STATUS_INFO[ComplaintStatus(status)]
    except ValueError:
        return {"label": str(status), "description": "Status tidak diketahui", "color": "gray"}
