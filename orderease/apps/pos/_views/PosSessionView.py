from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.pos.models import PosSession
from orderease.apps.pos.services import close_session, current_session, open_session, session_totals
from orderease.apps.utils import ensure_can_access_branch, get_branch_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


class PosSessionView(APIView):
    """POST {branch_id?, opening_float?, notes?}: open a cashier session"""
    policy_resource = 'pos_sessions'

    def post(self, request):
        branch = get_branch_for_user(request.user, request.data.get('branch_id') or request.user.branch_id)
        session = open_session(branch, request.user, request.data.get('opening_float', 0), request.data.get('notes', ''))
        return Response({'session': session.to_dict()}, status=status.HTTP_201_CREATED)


class CurrentPosSessionView(APIView):
    """GET ?branch_id=: the open session with running totals, or null"""
    policy_resource = 'pos_sessions'

    def get(self, request):
        branch = get_branch_for_user(request.user, request.GET.get('branch_id') or request.user.branch_id)
        session = current_session(branch)
        if session is None:
            return Response({'session': None})
        data = session.to_dict()
        data['totals'] = session_totals(session)
        return Response({'session': data})


class ClosePosSessionView(APIView):
    """POST {closing_cash, expected_cash, notes?}"""
    policy_resource = 'pos_sessions'
    policy_actions = {'POST': 'update'}

    def post(self, request, session_id):
        session = PosSession.objects.filter(pk=session_id).first()
        if session is None:
            return Response({'error': 'Session not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_branch(request.user, session.branch_id):
            logger.warning(f"{request.user.email} attempted to close session {session_id} of branch {session.branch_id}")
            return Response({'error': 'You do not have access to this session'}, status=status.HTTP_403_FORBIDDEN)

        data = request.data
        session = close_session(session, data.get('closing_cash', 0), data.get('expected_cash', 0), data.get('notes', ''))
        return Response({
            'session': session.to_dict(),
            'summary': {
                **session.totals,
                'cashVariance': float(session.cash_variance),
                'closingCash': float(session.closing_cash),
                'expectedCash': float(session.expected_cash),
            },
        })
