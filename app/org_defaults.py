"""
Compiled-in default organization structure.

This is the tree shown before any override records arrive from the
hosted ``org_metadata`` table, and the source used to restore the
administrative department (``dept7``) if it ever goes missing.

Department order matters for display: ``dept7`` (administrative) comes
first, followed by ``dept1`` … ``dept6``.
"""

from app.models.org_structure import Company, Department, OrgTree, SubDepartment


def _subs(*items: SubDepartment) -> dict[str, SubDepartment]:
    return {sub.id: sub for sub in items}


def default_tree() -> OrgTree:
    """Return a fresh copy of the compiled-in organization tree."""
    return OrgTree(
        company=Company(manager="Основатель"),
        departments={
            "dept7": Department(
                id="dept7",
                name="Админ.",
                full_name="Административный департамент",
                color="#06b6d4",
                icon="building",
                description="Административное обеспечение",
                manager="Генеральный директор",
                departments=_subs(
                    SubDepartment(
                        id="dept7_19",
                        name="Офис Генерального директора",
                        code="7.19",
                        manager="Секретарь",
                        vfp="Жизнеспособная компания",
                    ),
                    SubDepartment(
                        id="dept7_20",
                        name="Офис по официальным вопросам",
                        code="7.20",
                        manager="Офис-менеджер",
                    ),
                    SubDepartment(
                        id="dept7_21",
                        name="Офис Совета директоров",
                        code="7.21",
                        manager="Секретарь Совета",
                    ),
                ),
            ),
            "dept1": Department(
                id="dept1",
                name="Персонал",
                full_name="Департамент персонала",
                color="#fbbf24",
                icon="users",
                description="Управление человеческими ресурсами",
                manager="Директор по персоналу",
                departments=_subs(
                    SubDepartment(
                        id="dept1_1",
                        name="Отдел найма и адаптации",
                        code="1.1",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept1_2",
                        name="Отдел по работе с коммуникациями",
                        code="1.2",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept1_3",
                        name="Отдел эффективности персонала",
                        code="1.3",
                        manager="Начальник отдела",
                    ),
                ),
            ),
            "dept2": Department(
                id="dept2",
                name="Коммерческий",
                full_name="Коммерческий департамент",
                color="#8b5cf6",
                icon="briefcase",
                description="Продажи и клиентские отношения",
                manager="Коммерческий директор",
                departments=_subs(
                    SubDepartment(
                        id="dept2_4",
                        name="Отдел маркетинга и продвижения",
                        code="2.4",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept2_5",
                        name="Отдел контента и понимания",
                        code="2.5",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept2_6",
                        name="Отдел продаж",
                        code="2.6",
                        manager="Начальник отдела",
                    ),
                ),
            ),
            "dept3": Department(
                id="dept3",
                name="Финансы",
                full_name="Финансовый департамент",
                color="#ec4899",
                icon="trending-up",
                description="Финансовое планирование и контроль",
                manager="Финансовый директор",
                departments=_subs(
                    SubDepartment(
                        id="dept3_7",
                        name="Отдел управления доходами",
                        code="3.7",
                        manager="Руководитель не назначен",
                    ),
                    SubDepartment(
                        id="dept3_8",
                        name="Отдел управления расходами",
                        code="3.8",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept3_9",
                        name="Отдел учета",
                        code="3.9",
                        manager="Главный бухгалтер",
                    ),
                ),
            ),
            "dept4": Department(
                id="dept4",
                name="Производство",
                full_name="Департамент производства",
                color="#10b981",
                icon="settings",
                description="Производственные процессы",
                manager="Директор по производству",
                departments=_subs(
                    SubDepartment(
                        id="dept4_10",
                        name="Отдел бронирования",
                        code="4.10",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept4_11",
                        name="Отдел транспорта",
                        code="4.11",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept4_12",
                        name="Отдел предоставления",
                        code="4.12",
                        manager="Начальник отдела",
                    ),
                ),
            ),
            "dept5": Department(
                id="dept5",
                name="Квалификация",
                full_name="Департамент квалификации",
                color="#3b82f6",
                icon="award",
                description="Контроль качества и обучение",
                manager="Директор по качеству",
                departments=_subs(
                    SubDepartment(
                        id="dept5_13",
                        name="Отдел контроля качества",
                        code="5.13",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept5_14",
                        name="Отдел обучения персонала",
                        code="5.14",
                        manager="Начальник отдела",
                    ),
                    SubDepartment(
                        id="dept5_15",
                        name="Отдел совершенствования",
                        code="5.15",
                        manager="Начальник отдела",
                    ),
                ),
            ),
            "dept6": Department(
                id="dept6",
                name="Расширение",
                full_name="Департамент расширения",
                color="#f97316",
                icon="globe",
                description="Развитие и расширение бизнеса",
                manager="Директор по развитию",
                departments=_subs(
                    SubDepartment(
                        id="dept6_16",
                        name="Отдел связи с общественностью",
                        code="6.16",
                        manager="Руководитель не назначен",
                    ),
                    SubDepartment(
                        id="dept6_17",
                        name="Отдел вводных услуг",
                        code="6.17",
                        manager="Руководитель не назначен",
                    ),
                    SubDepartment(
                        id="dept6_18",
                        name="Отдел партнеров",
                        code="6.18",
                        manager="Родникова Елена Николаевна",
                    ),
                ),
            ),
        },
    )
