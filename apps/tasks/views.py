"""
Tasks Views

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated

from apps.core.pagination import CustomPageNumberPagination
from apps.core.permissions import IsAdminUser
from apps.core.responses import success_response, error_response
from apps.realtime.events import UPDATE
from .assignments import AssignmentResolver
from .attachments import AttachmentService
from .forwarding import TaskForwardingService
from .lifecycle import StatusTransitionHandler
from .models import Task, TaskAttachment, TaskHistory, TaskProof
from .notifications import NotificationService
from .proofs import ProofService
from .serializers import (
    TaskSerializer, TaskListSerializer, CreateTaskSerializer, UpdateTaskSerializer,
    AssignTaskSerializer, TransitionSerializer, ProgressSerializer,
    SubmitProofSerializer, ReviewProofSerializer, ReassignSerializer,
    TaskProofSerializer, TaskAttachmentSerializer, UploadAttachmentSerializer,
    TaskHistorySerializer, serializer_context
)
from .signals import publish_task_event

logger = logging.getLogger(__name__)


def forbidden(message="You are not assigned to this task"):
    return error_response(
        message=message,
        code='UNAUTHORIZED',
        status_code=status.HTTP_403_FORBIDDEN
    )


def can_view_task(user, task):
    return user.role == 'admin' or AssignmentResolver.is_assignee(task, user)


def visible_tasks(user):
    queryset = Task.objects.select_related('job', 'assigned_to', 'created_by')
    if user.role == 'admin':
        return queryset
    return queryset.filter(AssignmentResolver.assignee_filter(user)).distinct()


def filter_tasks(queryset, params, user):
    task_status = params.get('status')
    if task_status:
        queryset = queryset.filter(status__in=[s.strip() for s in task_status.split(',')])

    priority = params.get('priority')
    if priority:
        queryset = queryset.filter(priority=priority)

    assignee = params.get('assignee')
    if assignee:
        queryset = queryset.filter(Q(assigned_to_id=assignee) | Q(assignee_links__user_id=assignee)).distinct()

    if params.get('mine', '').lower() in ('1', 'true', 'yes'):
        queryset = queryset.filter(AssignmentResolver.assignee_filter(user)).distinct()

    job = params.get('job')
    if job:
        queryset = queryset.filter(job_id=job)

    due_from = parse_date(params.get('due_from') or '')
    if due_from:
        queryset = queryset.filter(due_date__date__gte=due_from)

    due_to = parse_date(params.get('due_to') or '')
    if due_to:
        queryset = queryset.filter(due_date__date__lte=due_to)

    search = params.get('search')
    if search:
        queryset = queryset.filter(Q(title__icontains=search) | Q(description__icontains=search))

    return queryset


# Task CRUD Endpoints

@extend_schema(
    tags=['Tasks'],
    summary='List and create tasks',
    description='Admins see every task; employees see the tasks assigned to them.',
    parameters=[
        OpenApiParameter('page', int, description='Page number'),
        OpenApiParameter('page_size', int, description='Items per page'),
        OpenApiParameter('status', str, description='Filter by status (comma separated)'),
        OpenApiParameter('priority', str, description='Filter by priority'),
        OpenApiParameter('assignee', str, description='Filter by assignee ID'),
        OpenApiParameter('mine', bool, description='Only tasks assigned to the caller'),
        OpenApiParameter('job', str, description='Filter by job ID'),
        OpenApiParameter('due_from', str, description='Due on or after (YYYY-MM-DD)'),
        OpenApiParameter('due_to', str, description='Due on or before (YYYY-MM-DD)'),
        OpenApiParameter('search', str, description='Search title and description'),
    ],
    request=CreateTaskSerializer,
    responses={200: TaskListSerializer(many=True), 201: TaskSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_list_create(request):
    """
    List tasks or create a new task.
    """
    if request.method == 'POST':
        if request.user.role != 'admin':
            return forbidden("Only administrators can create tasks")

        serializer = CreateTaskSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                message="Invalid task data",
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        task = serializer.save(created_by=request.user)
        assignees = AssignmentResolver.assignees_for(task)
        if assignees:
            publish_task_event(task, UPDATE)
            NotificationService.notify_task_assigned(task, assignees)
        logger.info(f"Task '{task.title}' created by {request.user.email}")

        return success_response(
            data=TaskSerializer(task, context=serializer_context(request)).data,
            message="Task created successfully",
            status_code=status.HTTP_201_CREATED
        )

    queryset = filter_tasks(visible_tasks(request.user), request.query_params, request.user)

    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = TaskListSerializer(page, many=True, context=serializer_context(request))
    return paginator.get_paginated_response(serializer.data)


@extend_schema(
    tags=['Tasks'],
    summary='Retrieve, update or delete a task',
    request=UpdateTaskSerializer,
    responses={200: TaskSerializer},
)
@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_detail(request, task_id):
    task = get_object_or_404(Task, pk=task_id)

    if request.method == 'GET':
        if not can_view_task(request.user, task):
            return forbidden()
        return success_response(data=TaskSerializer(task, context=serializer_context(request)).data)

    if request.user.role != 'admin':
        return forbidden("Only administrators can change task details")

    if request.method == 'DELETE':
        title = task.title
        task.delete()
        logger.info(f"Task '{title}' deleted by {request.user.email}")
        return success_response(message="Task deleted successfully")

    serializer = UpdateTaskSerializer(task, data=request.data, partial=True)
    if not serializer.is_valid():
        return error_response(
            message="Invalid task data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    task = serializer.save(updated_by=request.user)
    logger.info(f"Task {task.pk} updated by {request.user.email}")
    return success_response(
        data=TaskSerializer(task, context=serializer_context(request)).data,
        message="Task updated successfully"
    )


@extend_schema(
    tags=['Tasks'],
    summary='Replace task assignees',
    request=AssignTaskSerializer,
    responses={200: TaskSerializer},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def task_assign(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    serializer = AssignTaskSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid assignment data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    previous = [str(user_id) for user_id in AssignmentResolver.assignee_ids(task)]
    assignees = AssignmentResolver.set_assignees(
        task, serializer.validated_data['assignee_ids'], assigned_by=request.user
    )
    TaskHistory.log_action(
        task, 'assigned', user=request.user,
        details={'previous': previous, 'assignee_ids': [str(u.pk) for u in assignees]}
    )
    publish_task_event(task, UPDATE, old={'assignee_ids': previous})
    NotificationService.notify_task_assigned(task, assignees)

    return success_response(
        data=TaskSerializer(task, context=serializer_context(request)).data,
        message="Task assigned successfully"
    )


# Lifecycle Endpoints

@extend_schema(
    tags=['Tasks'],
    summary='Change task status',
    description='Not Started → In Progress ⇄ Paused → Completed. Only assignees may change status. '
                'Returns 403 for non-assignees and 409 for transitions that are not allowed.',
    request=TransitionSerializer,
    responses={200: TaskSerializer},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def task_transition(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    serializer = TransitionSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid status",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    task = StatusTransitionHandler.transition(task, serializer.validated_data['status'], request.user)
    return success_response(
        data=TaskSerializer(task, context=serializer_context(request)).data,
        message=f"Task status changed to {task.status}"
    )


@extend_schema(tags=['Tasks'], summary='Update task progress', request=ProgressSerializer, responses={200: TaskSerializer})
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def task_progress(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    serializer = ProgressSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid progress",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    task = StatusTransitionHandler.update_progress(
        task, serializer.validated_data['progress_percentage'], request.user
    )
    return success_response(
        data=TaskSerializer(task, context=serializer_context(request)).data,
        message="Progress updated"
    )


@extend_schema(
    tags=['Tasks'],
    summary='Send a task back for rework',
    description='Resets the task to Not Started and clears its time accounting. '
                'Optionally replaces the assignees.',
    request=ReassignSerializer,
    responses={200: TaskSerializer},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def task_reassign(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    serializer = ReassignSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid reassignment data",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    task = ProofService.request_reassignment(
        task, request.user, assignees=serializer.validated_data.get('assignee_ids')
    )
    return success_response(
        data=TaskSerializer(task, context=serializer_context(request)).data,
        message="Task sent back for rework"
    )


# Proof Endpoints

@extend_schema(
    tags=['Proofs'],
    summary='List proofs or submit a completion proof',
    description='POST (multipart) uploads the image, records the proof and completes the task.',
    request=SubmitProofSerializer,
    responses={200: TaskProofSerializer(many=True), 201: TaskProofSerializer},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def task_proofs(request, task_id):
    task = get_object_or_404(Task, pk=task_id)

    if request.method == 'GET':
        if not can_view_task(request.user, task):
            return forbidden()
        proofs = task.proofs.select_related('submitted_by', 'reviewed_by')
        return success_response(data=TaskProofSerializer(proofs, many=True).data)

    serializer = SubmitProofSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid proof",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    proof = ProofService.submit_proof(
        task,
        serializer.validated_data['image'],
        serializer.validated_data['notes'],
        request.user
    )
    return success_response(
        data={
            'proof': TaskProofSerializer(proof).data,
            'task': TaskSerializer(task, context=serializer_context(request)).data,
        },
        message="Proof submitted and task completed",
        status_code=status.HTTP_201_CREATED
    )


@extend_schema(
    tags=['Proofs'],
    summary='List proofs awaiting review',
    parameters=[OpenApiParameter('status', str, description='Pending (default), Approved or Rejected')],
    responses={200: TaskProofSerializer(many=True)},
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def proof_list(request):
    proof_status = request.query_params.get('status', 'Pending')
    queryset = TaskProof.objects.select_related('task', 'submitted_by', 'reviewed_by').filter(status=proof_status)

    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(queryset, request)
    return paginator.get_paginated_response(TaskProofSerializer(page, many=True).data)


@extend_schema(
    tags=['Proofs'],
    summary='Approve or reject a proof',
    description='Rejecting requires a reason. The task status is not changed.',
    request=ReviewProofSerializer,
    responses={200: TaskProofSerializer},
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def proof_review(request, proof_id):
    proof = get_object_or_404(TaskProof.objects.select_related('task'), pk=proof_id)
    serializer = ReviewProofSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            message="Invalid review",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    proof = ProofService.review_proof(
        proof,
        serializer.validated_data['decision'],
        request.user,
        rejection_reason=serializer.validated_data['rejection_reason']
    )
    return success_response(
        data=TaskProofSerializer(proof).data,
        message=f"Proof {proof.status.lower()}"
    )


# Attachment Endpoints

@extend_schema(
    tags=['Attachments'],
    summary='List or upload task attachments',
    description='Each uploaded file succeeds or fails on its own; failures are listed in `errors`.',
    request=UploadAttachmentSerializer,
    responses={200: TaskAttachmentSerializer(many=True)},
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def task_attachments(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    if not can_view_task(request.user, task):
        return forbidden()

    if request.method == 'GET':
        attachments = task.attachments.select_related('uploaded_by')
        return success_response(data=TaskAttachmentSerializer(attachments, many=True).data)

    files = request.FILES.getlist('files')
    serializer = UploadAttachmentSerializer(data={'files': files})
    if not serializer.is_valid():
        return error_response(
            message="No files uploaded",
            details=serializer.errors,
            status_code=status.HTTP_400_BAD_REQUEST
        )

    attachments, errors = AttachmentService.upload_many(task, serializer.validated_data['files'], request.user)
    if not attachments:
        return error_response(
            message="No files could be uploaded",
            code='UPLOAD_FAILED',
            details={'errors': errors},
            status_code=status.HTTP_400_BAD_REQUEST
        )

    return success_response(
        data={
            'attachments': TaskAttachmentSerializer(attachments, many=True).data,
            'errors': errors,
        },
        message=f"{len(attachments)} file(s) uploaded",
        status_code=status.HTTP_201_CREATED
    )


@extend_schema(tags=['Attachments'], summary='Delete an attachment')
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def attachment_delete(request, attachment_id):
    attachment = get_object_or_404(TaskAttachment.objects.select_related('task'), pk=attachment_id)
    if request.user.role != 'admin' and attachment.uploaded_by_id != request.user.id:
        return forbidden("You can only delete your own attachments")

    AttachmentService.delete(attachment)
    return success_response(message="Attachment deleted successfully")


@extend_schema(tags=['Tasks'], summary='Task history', responses={200: TaskHistorySerializer(many=True)})
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_history(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    if not can_view_task(request.user, task):
        return forbidden()

    history = task.history.select_related('user')
    paginator = CustomPageNumberPagination()
    page = paginator.paginate_queryset(history, request)
    return paginator.get_paginated_response(TaskHistorySerializer(page, many=True).data)


# Forwarding Endpoints

@extend_schema(
    tags=['Forwarding'],
    summary='Forward overdue planned tasks',
    description='Moves Planned tasks whose due day has passed to Pending, due tomorrow. '
                'Per-task failures are returned in `errors`.',
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def forward_overdue(request):
    result = TaskForwardingService.forward_overdue_tasks()
    logger.info(f"Forwarding run by {request.user.email}: {result.forwarded_count} task(s)")
    return success_response(
        data=result.as_dict(),
        message=f"{result.forwarded_count} task(s) forwarded"
    )


@extend_schema(tags=['Forwarding'], summary='Move a pending task back to planned')
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def move_to_planned(request, task_id):
    task = get_object_or_404(Task, pk=task_id)
    task = TaskForwardingService.move_pending_to_planned(task, acting_user=request.user)
    return success_response(
        data=TaskSerializer(task, context=serializer_context(request)).data,
        message="Task moved back to planned"
    )


@extend_schema(tags=['Forwarding'], summary='Forwarding statistics and status summary')
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def forwarding_stats(request):
    return success_response(data={
        'forwarding': TaskForwardingService.forwarding_stats(),
        'status_summary': TaskForwardingService.status_summary(),
    })
